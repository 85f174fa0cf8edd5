from __future__ import annotations
import json
import logging
import re
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class FeedbackResult(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	success: bool = True
	positive_feedback: List[str] = Field(default_factory=list, alias="positiveFeedback")
	negative_feedback: List[str] = Field(default_factory=list, alias="negativeFeedback")


_POSITIVE_LABEL = re.compile(r"^positive(\s+feedback)?\b\s*[:\-]?\s*", re.IGNORECASE)
_NEGATIVE_LABEL = re.compile(r"^negative(\s+feedback)?\b\s*[:\-]?\s*", re.IGNORECASE)
_RULE = re.compile(r"[-+*_=\s]+")
_MAX_HEADING_WORDS = 4


def _extract_json_object(text: str) -> Optional[Any]:
	first = text.find("{")
	last = text.rfind("}")
	if first == -1 or last <= first:
		return None
	try:
		return json.loads(text[first : last + 1])
	except ValueError:
		return None


def _as_feedback_list(value: Any) -> List[str]:
	if not isinstance(value, list):
		return []
	return [item if isinstance(item, str) else json.dumps(item) for item in value]


def _lines(text: str) -> List[str]:
	return [line.strip() for line in text.splitlines() if line.strip()]


def _is_noise(item: str) -> bool:
	"""Empty items, markdown rules ("---") and bare section headings ("Strengths:")."""
	if not item or _RULE.fullmatch(item):
		return True
	heading = item.strip("#* ")
	return heading.endswith(":") and len(heading.split()) <= _MAX_HEADING_WORDS


def classify_lines(text: str) -> Tuple[List[str], List[str]]:
	positives: List[str] = []
	negatives: List[str] = []
	for line in _lines(text):
		if _RULE.fullmatch(line):
			continue
		lowered = line.lower()
		if line.startswith("+"):
			positives.append(line[1:].strip())
		elif line.startswith("-"):
			negatives.append(line[1:].strip())
		elif re.match(r"positive\b", lowered):
			positives.append(_POSITIVE_LABEL.sub("", line, count=1))
		elif re.match(r"negative\b", lowered):
			negatives.append(_NEGATIVE_LABEL.sub("", line, count=1))
		elif "strength" in lowered:
			positives.append(line)
		elif "improv" in lowered or "weak" in lowered:
			negatives.append(line)
	return [p for p in positives if not _is_noise(p)], [n for n in negatives if not _is_noise(n)]


def split_lines(text: str, size: int = 4) -> Tuple[List[str], List[str]]:
	lines = _lines(text)
	return lines[:size], lines[size : size * 2]


def interpret_feedback(text: Optional[str], *, fallback: str = "classify") -> FeedbackResult:
	"""Turn raw model output into positive/negative feedback.

	Order: JSON object between the first ``{`` and last ``}``; then the
	line heuristic (``classify`` or ``split``); then the whole text as a single
	positive entry. Never raises.
	"""
	text = text or ""
	data = _extract_json_object(text)
	if isinstance(data, dict) and ("positiveFeedback" in data or "negativeFeedback" in data):
		return FeedbackResult(
			positive_feedback=_as_feedback_list(data.get("positiveFeedback")),
			negative_feedback=_as_feedback_list(data.get("negativeFeedback")),
		)

	logger.warning("No feedback JSON found in model response, using %s fallback", fallback)
	if fallback == "split":
		positives, negatives = split_lines(text)
	else:
		positives, negatives = classify_lines(text)
	if not positives and not negatives and text.strip():
		positives = [text.strip()]
	return FeedbackResult(positive_feedback=positives, negative_feedback=negatives)
