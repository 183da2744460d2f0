import re

from grounded_essay.models import Citation, CitationStyle, Outline, Paragraph, SourceGroup, SourceItem

CHUNK_LABEL_SUFFIX = re.compile(r':p\d+$')
PARENTHETICAL_CITATION = re.compile(r'\s*\((?:[^()]*?:p\d+)(?:\s*;\s*[^()]*?:p\d+)*\)')
NUMBERED_CITATION = re.compile(r'\s*\[\d+(?:\s*[,;-]\s*\d+)*\]')

REFERENCE_HEADINGS = {
	CitationStyle.APA: 'References',
	CitationStyle.MLA: 'Works Cited',
	CitationStyle.HARVARD: 'Reference List',
	CitationStyle.CHICAGO: 'Bibliography',
}


def _body(paragraph: Paragraph, edit: str | None) -> str:
	# Blank edits count as absent
	if edit is not None and edit.strip():
		return edit.strip()
	return (paragraph.expanded_text or '').strip()


def _occurrences(text: str, span: str) -> list[int]:
	starts = []
	start = text.find(span)
	while start != -1:
		starts.append(start)
		start = text.find(span, start + len(span))
	return starts


def annotate_citations(text: str, citations: list[Citation]) -> str:
	"""Insert `` (LABEL)`` after the first occurrence of each span not yet annotated.

	When every occurrence of a span already carries an annotation the label
	is merged into the first one, giving ``(A:p1; B:p1)``. Spans that no
	longer occur (the text was edited) are skipped.
	"""
	insertions: dict[int, list[str]] = {}
	annotated: dict[str, set[int]] = {}

	for citation in citations:
		starts = _occurrences(text, citation.span_text)
		if not starts:
			continue

		taken = annotated.setdefault(citation.span_text, set())
		free = [s for s in starts if s not in taken]
		start = free[0] if free else starts[0]
		taken.add(start)

		labels = insertions.setdefault(start + len(citation.span_text), [])
		if citation.source_label not in labels:
			labels.append(citation.source_label)

	for position in sorted(insertions, reverse=True):
		annotation = f' ({"; ".join(insertions[position])})'
		text = text[:position] + annotation + text[position:]

	return text


def assemble(outline: Outline, edits: dict[int, str] | None = None, include_citations: bool = False) -> str:
	"""Titles and bodies in paragraph order; unexpanded paragraphs contribute only their title."""
	edits = edits or {}
	blocks = []

	for idx, paragraph in enumerate(outline.paragraphs):
		blocks.append(paragraph.title)

		edit = edits.get(idx)
		body = _body(paragraph, edit)
		if not body:
			continue

		if include_citations and paragraph.citations:
			body = annotate_citations(body, paragraph.citations)
		blocks.append(body)

	return '\n\n'.join(blocks)


def strip_citations(text: str) -> str:
	text = PARENTHETICAL_CITATION.sub('', text)
	return NUMBERED_CITATION.sub('', text)


def source_id_for_label(label: str) -> str:
	return CHUNK_LABEL_SUFFIX.sub('', label)


def cited_references(outline: Outline, sources: list[SourceItem]) -> list[SourceItem]:
	"""Reference-group sources cited anywhere in the outline, in first-citation order."""
	by_id = {s.id: s for s in sources if s.group == SourceGroup.REFERENCES}
	cited: list[SourceItem] = []

	for paragraph in outline.paragraphs:
		for citation in paragraph.citations or []:
			source = by_id.get(source_id_for_label(citation.source_label))
			if source is not None and source not in cited:
				cited.append(source)

	return cited


def format_reference(source: SourceItem, style: CitationStyle, number: int) -> str:
	name = source.display_name.strip()
	if style == CitationStyle.APA:
		return f'{name}. (n.d.).'
	if style == CitationStyle.MLA:
		return f'"{name}." n.d.'
	if style == CitationStyle.HARVARD:
		return f'{name} (n.d.)'
	if style == CitationStyle.CHICAGO:
		return f'{number}. {name}.'
	return name


def build_references(outline: Outline, sources: list[SourceItem], style: CitationStyle) -> str:
	if style == CitationStyle.NONE:
		return ''

	cited = cited_references(outline, sources)
	heading = REFERENCE_HEADINGS[style]
	if not cited:
		return f'{heading}\n\nNo references cited.'

	# Chicago keeps citation order, the author-date styles are alphabetical
	if style != CitationStyle.CHICAGO:
		cited = sorted(cited, key=lambda s: s.display_name.lower())

	entries = [format_reference(source, style, i) for i, source in enumerate(cited, start=1)]
	return f'{heading}\n\n' + '\n'.join(entries)


def export_essay(
	outline: Outline,
	sources: list[SourceItem],
	edits: dict[int, str] | None = None,
	citation_style: CitationStyle = CitationStyle.APA,
	include_citations: bool = True,
	include_references: bool = True,
) -> str:
	with_citations = include_citations and citation_style != CitationStyle.NONE
	body = assemble(outline, edits, include_citations=with_citations)
	if citation_style == CitationStyle.NONE:
		body = strip_citations(body)

	parts = [f'Thesis: {outline.thesis}', body]

	if include_references:
		references = build_references(outline, sources, citation_style)
		if references:
			parts.append(references)

	return '\n\n'.join(parts)


def essay_stats(outline: Outline, edits: dict[int, str] | None = None) -> dict[str, int]:
	edits = edits or {}
	total_words = 0
	citation_count = 0
	chunks_used: set[str] = set()

	for idx, paragraph in enumerate(outline.paragraphs):
		total_words += len(_body(paragraph, edits.get(idx)).split())
		citation_count += len(paragraph.citations or [])
		chunks_used.update(u.label for u in paragraph.used_chunks or [])

	return {
		'total_words': total_words,
		'citation_count': citation_count,
		'chunks_used': len(chunks_used),
		'paragraphs_expanded': sum(1 for p in outline.paragraphs if p.is_expanded),
		'paragraph_count': len(outline.paragraphs),
	}
