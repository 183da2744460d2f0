import math
import uuid
from datetime import UTC, datetime
from typing import Any

from grounded_essay.config.settings import Settings
from grounded_essay.errors import GenerationError, ValidationError
from grounded_essay.llm.client import GenerationCapability, generate_bounded
from grounded_essay.models import ChunkRef, EvidenceChunk, Outline, OutlineRequest, Paragraph
from grounded_essay.modules.evidence import chunks_by_label
from grounded_essay.modules.writing.prompt_builder import build_outline_prompts
from grounded_essay.utils.json_response import parse_json_response
from grounded_essay.utils.logger import logger

MAX_PARAGRAPH_WEIGHT = 1000.0


def partition_word_count(total: int, weights: list[float]) -> list[int]:
	"""Split ``total`` words across paragraphs in proportion to ``weights``.

	Every paragraph gets one word up front, the rest is shared out with the
	largest-remainder method (ties go to the earlier paragraph), so the result
	always sums to exactly ``total``. Non-positive weights count as 1 and
	weights are capped at ``MAX_PARAGRAPH_WEIGHT``.
	"""
	if not weights:
		return []
	if total < len(weights):
		raise ValueError(f'Cannot split {total} words across {len(weights)} paragraphs')

	weights = [min(w, MAX_PARAGRAPH_WEIGHT) if w > 0 else 1.0 for w in weights]
	weight_sum = sum(weights)
	spare = total - len(weights)

	quotas = [spare * w / weight_sum for w in weights]
	counts = [math.floor(q) for q in quotas]
	remainder = spare - sum(counts)

	by_fraction = sorted(range(len(weights)), key=lambda i: (-(quotas[i] - counts[i]), i))
	for i in by_fraction[:remainder]:
		counts[i] += 1

	return [c + 1 for c in counts]


class OutlinePlanner:
	def __init__(self, generator: GenerationCapability, settings: Settings):
		self.generator = generator
		self.settings = settings

	async def plan(self, request: OutlineRequest, chunks: list[EvidenceChunk]) -> Outline:
		self.validate_request(request, chunks)
		candidates = self._candidate_chunks(request, chunks)

		logger.info(
			f'Planning outline: {request.target_word_count} words, mode={request.mode.value}, '
			f'{len(candidates)} candidate chunks'
		)

		system_prompt, user_prompt = build_outline_prompts(request, candidates, self.settings.MAX_PARAGRAPHS)
		raw_text = await generate_bounded(
			self.generator, system_prompt, user_prompt, self.settings.GENERATION_TIMEOUT_SECONDS
		)

		data = parse_json_response(raw_text)
		thesis = self._parse_thesis(data)
		plans = self._parse_paragraph_plans(data, request.target_word_count)

		known = chunks_by_label(candidates)
		word_counts = partition_word_count(request.target_word_count, [p['weight'] for p in plans])

		paragraphs = []
		for plan, word_count in zip(plans, word_counts):
			refs = []
			for label in plan['chunk_labels']:
				if label not in known:
					logger.warning(f"Dropping unknown chunk label '{label}' from paragraph '{plan['title']}'")
					continue
				if any(r.label == label for r in refs):
					continue
				refs.append(ChunkRef(label=label, excerpt_text=known[label].excerpt_text))

			paragraphs.append(Paragraph(title=plan['title'], intended_chunks=refs, suggested_word_count=word_count))

		outline = Outline(
			outline_id=f'outline_{uuid.uuid4().hex}',
			thesis=thesis,
			paragraphs=paragraphs,
			retrieved_chunk_count=len(candidates),
			created_at=datetime.now(UTC).isoformat(),
		)

		logger.info(f'Outline {outline.outline_id} planned with {len(paragraphs)} paragraphs')
		return outline

	def validate_request(self, request: OutlineRequest, chunks: list[EvidenceChunk]) -> None:
		if not isinstance(request.prompt, str) or not request.prompt.strip():
			raise ValidationError('Essay prompt is required')

		word_count = request.target_word_count
		if isinstance(word_count, bool) or not isinstance(word_count, int) or word_count <= 0:
			raise ValidationError(f'target_word_count must be a positive integer, got {word_count!r}')

		if word_count > self.settings.MAX_TARGET_WORD_COUNT:
			raise ValidationError(
				f'target_word_count must be at most {self.settings.MAX_TARGET_WORD_COUNT}, got {word_count}'
			)

		known = chunks_by_label(chunks)
		unknown = [label for label in request.chunk_refs if label not in known]
		if unknown:
			raise ValidationError(f'Unknown chunk labels: {", ".join(unknown)}')

	def _candidate_chunks(self, request: OutlineRequest, chunks: list[EvidenceChunk]) -> list[EvidenceChunk]:
		if not request.chunk_refs:
			return list(chunks)

		wanted = set(request.chunk_refs)
		return [c for c in chunks if c.label in wanted]

	def _parse_thesis(self, data: dict[str, Any]) -> str:
		thesis = data.get('thesis')
		if not isinstance(thesis, str) or not thesis.strip():
			raise GenerationError("Outline response is missing a 'thesis'")
		return thesis.strip()

	def _parse_paragraph_plans(self, data: dict[str, Any], target_word_count: int) -> list[dict[str, Any]]:
		raw_paragraphs = data.get('paragraphs')
		if not isinstance(raw_paragraphs, list) or not raw_paragraphs:
			raise GenerationError("Outline response has no 'paragraphs'")

		plans = []
		for idx, raw in enumerate(raw_paragraphs):
			if not isinstance(raw, dict):
				raise GenerationError(f'Paragraph {idx} in outline response is not an object')

			title = raw.get('title')
			if not isinstance(title, str) or not title.strip():
				raise GenerationError(f'Paragraph {idx} in outline response has no title')

			labels = raw.get('chunk_labels') or []
			if not isinstance(labels, list):
				labels = []

			plans.append(
				{
					'title': title.strip(),
					'chunk_labels': [str(label).strip() for label in labels],
					'weight': self._parse_weight(raw),
				}
			)

		limit = min(self.settings.MAX_PARAGRAPHS, target_word_count)
		if len(plans) > limit:
			logger.warning(f'Outline response has {len(plans)} paragraphs, keeping the first {limit}')
			plans = plans[:limit]

		return plans

	def _parse_weight(self, raw: dict[str, Any]) -> float:
		value = raw.get('weight', raw.get('suggested_word_count', 1.0))
		try:
			weight = float(value)
		except (TypeError, ValueError):
			return 1.0
		if math.isnan(weight) or math.isinf(weight):
			raise GenerationError(f'Paragraph weight {value!r} in outline response is not a finite number')
		return min(weight, MAX_PARAGRAPH_WEIGHT)
