from __future__ import annotations
from typing import Optional, Sequence


DEFAULT_FOCUS = (
	"Argument strength and logical flow",
	"Evidence and supporting details",
	"Writing clarity and organization",
	"Grammar and style",
	"Thesis development and conclusion",
)


def build_feedback_prompt(essay: str, *, max_items: Optional[int] = None, focus: Sequence[str] = DEFAULT_FOCUS) -> str:
	"""Build the instruction sent to the model for one essay.

	The reply is requested as a JSON object with exactly two keys,
	``positiveFeedback`` and ``negativeFeedback``, each an array of short strings.
	"""
	limit = f"Give at most {max_items} items in each array.\n" if max_items else ""
	focus_lines = "".join(f"- {item}\n" for item in focus)
	return (
		"You are an expert writing instructor. Analyze the student's essay and return JSON only with two arrays: "
		"\"positiveFeedback\" and \"negativeFeedback\".\n"
		"Each array should contain concise bullet-style strings (max 1-2 sentences), each describing one specific "
		"strength or one specific area for improvement.\n"
		f"{limit}"
		"Return exactly this JSON shape and nothing else: "
		"{ \"positiveFeedback\": [\"...\"], \"negativeFeedback\": [\"...\"] }\n\n"
		"Essay to analyze:\n"
		"\"\"\"\n"
		f"{essay}\n"
		"\"\"\"\n\n"
		+ (f"Focus on:\n{focus_lines}\n" if focus_lines else "")
		+ "Provide constructive, specific feedback that helps the student improve their writing."
	)
