import re
from dataclasses import dataclass, field

from grounded_essay.errors import GenerationError
from grounded_essay.models import Citation, EvidenceChunk, UsedChunk
from grounded_essay.utils.logger import logger

MARKER_PATTERN = re.compile(r'\[([^\[\]\n]{1,300})\]')
LABEL_PATTERN = re.compile(r'^[^\s\[\];,]+:p\d+$')
LEADING_MARKER_PATTERN = re.compile(r'^\[([^\[\]\n]{1,300})\]\s*')
SENTENCE_SPLIT_PATTERN = re.compile(r'(?:(?<=[.!?])|(?<=[.!?]["\'”)]))\s+')
TRAILING_MARKERS_PATTERN = re.compile(r'([.!?]["\'”)]?)\s*((?:\[[^\[\]\n]{1,300}\]\s*)+)$')
TERMINAL_PUNCTUATION = '.!?"\'”) '


def marker_labels(content: str) -> list[str]:
	"""Label-shaped tokens inside a bracket, or [] when the bracket is ordinary prose."""
	tokens = [t.strip() for t in re.split(r'[;,]', content)]
	return [t for t in tokens if LABEL_PATTERN.match(t)]


@dataclass
class ParsedSentence:
	text: str
	labels: list[str] = field(default_factory=list)
	has_unresolved_marker: bool = False

	@property
	def is_cited(self) -> bool:
		return bool(self.labels)


@dataclass
class ParsedParagraph:
	text: str
	citations: list[Citation]
	used_chunks: list[UsedChunk]
	sentences: list[ParsedSentence]
	dropped_labels: list[str]


class CitationParser:
	"""Turns raw generated prose with ``[LABEL]`` markers into clean text plus citation bindings.

	A citation's span is the clean text from the start of its sentence, or
	from the previous marker in that sentence, up to the marker. Spans are
	taken from the final sentence strings, so each one is a verbatim substring
	of the paragraph text. Labels that are not in ``known_chunks`` are dropped
	and never fail the parse.
	"""

	def parse(self, raw_text: str, known_chunks: dict[str, EvidenceChunk]) -> ParsedParagraph:
		text = self._strip_fences(raw_text)
		text = re.sub(r'\s+', ' ', text).strip()

		raw_sentences = self._attach_trailing_markers(SENTENCE_SPLIT_PATTERN.split(text))

		citations: list[Citation] = []
		sentences: list[ParsedSentence] = []
		dropped: list[str] = []

		for raw_sentence in raw_sentences:
			sentence, sentence_citations, unresolved = self._parse_sentence(raw_sentence, known_chunks)
			if not sentence.text:
				continue
			dropped.extend(unresolved)
			sentence.has_unresolved_marker = bool(unresolved)
			sentences.append(sentence)
			citations.extend(sentence_citations)

		paragraph_text = ' '.join(s.text for s in sentences)
		if not paragraph_text:
			raise GenerationError('Generated paragraph is empty after removing citation markers')

		if dropped:
			logger.warning(f'Dropped {len(dropped)} unresolved citation markers: {", ".join(sorted(set(dropped)))}')

		return ParsedParagraph(
			text=paragraph_text,
			citations=citations,
			used_chunks=self._used_chunks(citations, known_chunks),
			sentences=sentences,
			dropped_labels=dropped,
		)

	def _parse_sentence(
		self, raw_sentence: str, known_chunks: dict[str, EvidenceChunk]
	) -> tuple[ParsedSentence, list[Citation], list[str]]:
		clean = ''
		cursor = 0
		segment_start = 0
		bindings: list[tuple[int, int, str]] = []
		unresolved: list[str] = []

		for match in MARKER_PATTERN.finditer(raw_sentence):
			labels = marker_labels(match.group(1))
			if not labels:
				continue

			clean = self._join(clean, raw_sentence[cursor : match.start()].rstrip())
			cursor = match.end()

			for label in labels:
				if label in known_chunks:
					bindings.append((segment_start, len(clean), label))
				else:
					unresolved.append(label)
			segment_start = len(clean)

		clean = self._join(clean, raw_sentence[cursor:])
		sentence_text = clean.strip()

		citations: list[Citation] = []
		seen: set[tuple[str, str]] = set()
		for start, end, label in bindings:
			span = clean[start:end].strip().lstrip(',;:').strip()
			if not span:
				# Marker opened the sentence; bind it to the whole sentence
				span = sentence_text.rstrip(TERMINAL_PUNCTUATION)
			if not span or (span, label) in seen:
				continue
			seen.add((span, label))
			citations.append(Citation(span_text=span, source_label=label))

		labels = [c.source_label for c in citations]
		return ParsedSentence(text=sentence_text, labels=labels), citations, unresolved

	def _join(self, clean: str, segment: str) -> str:
		# A removed marker must not glue the words on either side of it
		if clean and segment and clean[-1].isalnum() and segment[0].isalnum():
			return f'{clean} {segment}'
		return clean + segment

	def _attach_trailing_markers(self, raw_sentences: list[str]) -> list[str]:
		"""Move markers that sit after a sentence's full stop back inside that sentence."""
		attached: list[str] = []
		for sentence in raw_sentences:
			leading = ''
			while attached:
				match = LEADING_MARKER_PATTERN.match(sentence)
				if not match or not marker_labels(match.group(1)):
					break
				leading += f' [{match.group(1)}]'
				sentence = sentence[match.end() :]

			if leading:
				attached[-1] = attached[-1] + leading

			if sentence:
				attached.append(sentence)

		return [self._move_markers_before_punctuation(s) for s in attached]

	def _move_markers_before_punctuation(self, sentence: str) -> str:
		match = TRAILING_MARKERS_PATTERN.search(sentence)
		if not match:
			return sentence

		markers = match.group(2).strip()
		if not all(marker_labels(m) for m in MARKER_PATTERN.findall(markers)):
			return sentence

		return f'{sentence[: match.start()]} {markers}{match.group(1)}'

	def _used_chunks(self, citations: list[Citation], known_chunks: dict[str, EvidenceChunk]) -> list[UsedChunk]:
		used: list[UsedChunk] = []
		seen: set[str] = set()
		for citation in citations:
			if citation.source_label in seen:
				continue
			seen.add(citation.source_label)
			used.append(UsedChunk(label=citation.source_label, page=known_chunks[citation.source_label].page_number))
		return used

	def _strip_fences(self, text: str) -> str:
		lines = [line for line in text.strip().splitlines() if not line.strip().startswith('```')]
		return '\n'.join(lines)
