import pytest

from grounded_essay.models import (
	Citation,
	CitationStyle,
	ExpansionState,
	OriginKind,
	Outline,
	Paragraph,
	SourceGroup,
	SourceItem,
	UsedChunk,
)
from grounded_essay.modules.export import annotate_citations, assemble, essay_stats, export_essay, strip_citations


def _paragraph(title, text=None, citations=None, used=None):
	paragraph = Paragraph(title=title, intended_chunks=[], suggested_word_count=100)
	if text is not None:
		paragraph.expansion_state = ExpansionState.EXPANDED
		paragraph.expanded_text = text
		paragraph.citations = citations or []
		paragraph.used_chunks = used or []
		paragraph.unsupported_flags = []
	return paragraph


@pytest.fixture
def outline():
	return Outline(
		outline_id='outline_a',
		thesis='Light powers plant life.',
		paragraphs=[
			_paragraph(
				'Introduction',
				'Plants convert light into energy. They grow.',
				[Citation(span_text='Plants convert light into energy', source_label='R1:p1')],
				[UsedChunk(label='R1:p1', page=1)],
			),
			_paragraph('Body'),
		],
		retrieved_chunk_count=2,
	)


@pytest.fixture
def sources():
	return [
		SourceItem(
			id='R1',
			group=SourceGroup.REFERENCES,
			display_name='Plant Biology',
			excerpt_text='...',
			priority=False,
			order=0,
			origin_kind=OriginKind.FILE,
			page_count=1,
		),
		SourceItem(
			id='N1',
			group=SourceGroup.NOTES,
			display_name='My notes',
			excerpt_text='...',
			priority=False,
			order=0,
			origin_kind=OriginKind.PASTED_TEXT,
		),
	]


def test_edit_overrides_unexpanded_paragraph(outline):
	text = assemble(outline, {1: 'B-edited'})

	assert text == 'Introduction\n\nPlants convert light into energy. They grow.\n\nBody\n\nB-edited'
	assert text.index('Plants convert') < text.index('B-edited')


def test_unexpanded_paragraph_contributes_only_title(outline):
	assert assemble(outline) == 'Introduction\n\nPlants convert light into energy. They grow.\n\nBody'


def test_blank_edit_falls_back_to_expanded_text(outline):
	assert 'Plants convert light' in assemble(outline, {0: '   '})


def test_edit_overrides_expanded_text(outline):
	text = assemble(outline, {0: 'Rewritten by the student.'})

	assert 'Rewritten by the student.' in text
	assert 'Plants convert light' not in text


def test_include_citations_annotates_span(outline):
	text = assemble(outline, include_citations=True)

	assert 'Plants convert light into energy (R1:p1). They grow.' in text


def test_citations_skip_spans_missing_from_edits(outline):
	text = assemble(outline, {0: 'Completely different prose.'}, include_citations=True)

	assert '(R1:p1)' not in text


def test_repeated_phrase_annotates_each_occurrence_once():
	citations = [
		Citation(span_text='Light matters', source_label='A:p1'),
		Citation(span_text='Light matters', source_label='B:p1'),
		Citation(span_text='Light matters', source_label='C:p1'),
	]

	text = annotate_citations('Light matters. Light matters.', citations)

	assert text == 'Light matters (A:p1; C:p1). Light matters (B:p1).'


def test_annotations_at_same_position_are_merged():
	citations = [
		Citation(span_text='Plants absorb light', source_label='R1:p1'),
		Citation(span_text='Plants absorb light', source_label='N1:p1'),
	]

	assert annotate_citations('Plants absorb light.', citations) == 'Plants absorb light (R1:p1; N1:p1).'


def test_export_adds_thesis_and_references(outline, sources):
	text = export_essay(outline, sources, citation_style=CitationStyle.APA)

	assert text.startswith('Thesis: Light powers plant life.\n\nIntroduction')
	assert '(R1:p1)' in text
	assert text.endswith('References\n\nPlant Biology. (n.d.).')
	assert 'My notes' not in text


@pytest.mark.parametrize(
	'style,heading,entry',
	[
		(CitationStyle.MLA, 'Works Cited', '"Plant Biology." n.d.'),
		(CitationStyle.HARVARD, 'Reference List', 'Plant Biology (n.d.)'),
		(CitationStyle.CHICAGO, 'Bibliography', '1. Plant Biology.'),
	],
)
def test_reference_list_per_style(outline, sources, style, heading, entry):
	text = export_essay(outline, sources, citation_style=style)

	assert text.endswith(f'{heading}\n\n{entry}')


def test_style_none_strips_citations_and_references(outline, sources):
	edits = {1: 'Students also cite things inline (R1:p1) and [2] numerically.'}

	text = export_essay(outline, sources, edits, citation_style=CitationStyle.NONE)

	assert '(R1:p1)' not in text
	assert '[2]' not in text
	assert 'Students also cite things inline and numerically.' in text
	assert 'References' not in text


def test_export_without_references_or_citations(outline, sources):
	text = export_essay(outline, sources, include_citations=False, include_references=False)

	assert '(R1:p1)' not in text
	assert 'References' not in text


def test_export_with_no_cited_references(sources):
	outline = Outline(outline_id='o', thesis='T.', paragraphs=[_paragraph('Only')], retrieved_chunk_count=0)

	assert export_essay(outline, sources).endswith('References\n\nNo references cited.')


def test_strip_citations_handles_combined_annotations():
	assert strip_citations('Light matters (A:p1; B:p2).') == 'Light matters.'


def test_essay_stats(outline):
	stats = essay_stats(outline, {1: 'Two words'})

	assert stats == {
		'total_words': 9,
		'citation_count': 1,
		'chunks_used': 1,
		'paragraphs_expanded': 1,
		'paragraph_count': 2,
	}
