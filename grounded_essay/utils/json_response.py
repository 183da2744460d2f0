import json
from typing import Any

from grounded_essay.errors import GenerationError


def clean_json(text: str) -> str:
	text = text.strip()
	if text.startswith('```json'):
		text = text[7:]
	if text.startswith('```'):
		text = text[3:]
	if text.endswith('```'):
		text = text[:-3]
	return text.strip()


def parse_json_response(text: str) -> dict[str, Any]:
	try:
		data = json.loads(clean_json(text))
	except json.JSONDecodeError as e:
		raise GenerationError(f'Malformed JSON from generator: {e}') from e

	if not isinstance(data, dict):
		raise GenerationError(f'Expected a JSON object from generator, got {type(data).__name__}')
	return data
