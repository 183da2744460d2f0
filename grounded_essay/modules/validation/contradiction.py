from grounded_essay.config.settings import Settings
from grounded_essay.errors import GenerationError
from grounded_essay.llm.client import GenerationCapability, generate_bounded
from grounded_essay.models import EvidenceChunk, UnsupportedFlag
from grounded_essay.modules.writing.prompt_builder import build_contradiction_prompts
from grounded_essay.utils.json_response import parse_json_response
from grounded_essay.utils.logger import logger

CONTRADICTION_REASON = 'contradicts provided materials'


class ContradictionChecker:
	"""Asks the generator which uncited sentences contradict the evidence (mixed and teach modes)."""

	def __init__(self, generator: GenerationCapability, settings: Settings):
		self.generator = generator
		self.settings = settings

	async def check(self, sentences: list[str], chunks: list[EvidenceChunk]) -> list[UnsupportedFlag]:
		if not sentences or not chunks:
			return []

		system_prompt, user_prompt = build_contradiction_prompts(sentences, chunks)

		try:
			response_text = await generate_bounded(
				self.generator, system_prompt, user_prompt, self.settings.GENERATION_TIMEOUT_SECONDS
			)
			evaluation = parse_json_response(response_text)
		except GenerationError as e:
			logger.warning(f'Contradiction check unavailable, no sentences flagged: {e}')
			return []

		raw_items = evaluation.get('contradictions', [])
		if not isinstance(raw_items, list):
			logger.warning("Contradiction check returned a non-list 'contradictions' field")
			return []

		flags: list[UnsupportedFlag] = []
		flagged: set[int] = set()
		for item in raw_items:
			if not isinstance(item, dict):
				continue
			index = item.get('index')
			if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(sentences):
				logger.warning(f'Contradiction check returned an invalid sentence index: {index!r}')
				continue
			if index in flagged:
				continue
			flagged.add(index)

			detail = item.get('reason')
			reason = f'{CONTRADICTION_REASON}: {detail}' if isinstance(detail, str) and detail.strip() else CONTRADICTION_REASON
			flags.append(UnsupportedFlag(sentence_text=sentences[index], reason=reason))

		return flags
