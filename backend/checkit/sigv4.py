"""AWS Signature Version 4 signing for raw HTTPS calls to Bedrock Runtime.

Only the header set the relay sends is signed: ``content-type``, ``host`` and
``x-amz-date``. Given identical inputs and timestamp the output is
byte-for-byte reproducible.
"""
from __future__ import annotations
import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple
from urllib.parse import quote

from .errors import SigningError

ALGORITHM = "AWS4-HMAC-SHA256"
SERVICE = "bedrock-runtime"
SIGNED_HEADERS = "content-type;host;x-amz-date"


@dataclass(frozen=True)
class SignedRequest:
	amz_date: str
	credential_scope: str
	canonical_request: str
	string_to_sign: str
	signature: str
	authorization: str
	headers: Dict[str, str]


def amz_timestamps(now: Optional[datetime] = None) -> Tuple[str, str]:
	"""Return ``(amzDate, dateStamp)`` for the given instant (UTC)."""
	now = now or datetime.now(timezone.utc)
	if now.tzinfo is not None:
		now = now.astimezone(timezone.utc)
	amz_date = now.strftime("%Y%m%dT%H%M%SZ")
	return amz_date, amz_date[:8]


def sha256_hex(data: bytes) -> str:
	return hashlib.sha256(data).hexdigest()


def _hmac(key: bytes, message: str) -> bytes:
	return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def signing_key(secret_access_key: str, date_stamp: str, region: str, service: str = SERVICE) -> bytes:
	k_date = _hmac(f"AWS4{secret_access_key}".encode("utf-8"), date_stamp)
	k_region = _hmac(k_date, region)
	k_service = _hmac(k_region, service)
	return _hmac(k_service, "aws4_request")


def canonical_uri(path: str) -> str:
	# Non-S3 services expect each segment of the (already encoded) path to be encoded again
	return quote(path or "/", safe="/~")


def canonical_request(method: str, path: str, query: str, content_type: str, host: str, amz_date: str, payload_hash: str) -> str:
	canonical_headers = f"content-type:{content_type}\nhost:{host}\nx-amz-date:{amz_date}\n"
	return "\n".join([
		method.upper(),
		canonical_uri(path),
		query,
		canonical_headers,
		SIGNED_HEADERS,
		payload_hash,
	])


def sign_request(
	*,
	host: str,
	path: str,
	body: bytes,
	region: str,
	access_key_id: str,
	secret_access_key: str,
	now: Optional[datetime] = None,
	method: str = "POST",
	query: str = "",
	content_type: str = "application/json",
	service: str = SERVICE,
) -> SignedRequest:
	try:
		amz_date, date_stamp = amz_timestamps(now)
		payload_hash = sha256_hex(body)
		creq = canonical_request(method, path, query, content_type, host, amz_date, payload_hash)
		credential_scope = f"{date_stamp}/{region}/{service}/aws4_request"
		to_sign = f"{ALGORITHM}\n{amz_date}\n{credential_scope}\n{sha256_hex(creq.encode('utf-8'))}"
		key = signing_key(secret_access_key, date_stamp, region, service)
		signature = hmac.new(key, to_sign.encode("utf-8"), hashlib.sha256).hexdigest()
	except (TypeError, ValueError) as exc:
		raise SigningError(f"Failed to sign Bedrock request: {exc}") from exc
	authorization = (
		f"{ALGORITHM} Credential={access_key_id}/{credential_scope}, "
		f"SignedHeaders={SIGNED_HEADERS}, Signature={signature}"
	)
	return SignedRequest(
		amz_date=amz_date,
		credential_scope=credential_scope,
		canonical_request=creq,
		string_to_sign=to_sign,
		signature=signature,
		authorization=authorization,
		headers={
			"Content-Type": content_type,
			"Host": host,
			"X-Amz-Date": amz_date,
			"Authorization": authorization,
		},
	)
