import re

from grounded_essay.models import EvidenceChunk, ReferenceSelection, SourceGroup, SourceItem

STOP_WORDS = {
	'which',
	'their',
	'about',
	'should',
	'these',
	'those',
	'there',
	'where',
	'would',
	'could',
	'point',
	'essay',
	'paragraph',
	'discuss',
	'explain',
	'describe',
	'write',
	'with',
	'that',
	'this',
	'from',
	'into',
	'and',
	'the',
	'for',
	'are',
	'how',
	'why',
	'what',
}

FALLBACK_COUNT = 2


def extract_keywords(text: str) -> set[str]:
	"""Extract meaningful keywords from text"""
	text = re.sub(r'[^\w\s]', ' ', text.lower())
	return {w for w in text.split() if len(w) >= 3 and w not in STOP_WORDS}


def relevance_score(query_keywords: set[str], title: str, body: str) -> float:
	"""Keyword overlap in [0, 1]: 60% title, 40% body."""
	if not query_keywords:
		return 0.0

	title_overlap = len(query_keywords & extract_keywords(title))
	body_overlap = len(query_keywords & extract_keywords(body))

	score = (title_overlap * 0.6 + body_overlap * 0.4) / len(query_keywords)
	return min(score, 1.0)


def select_references(
	items: list[SourceItem],
	prompt: str,
	essay_topic: str | None = None,
	min_score: float = 0.15,
	top_k: int = 5,
) -> ReferenceSelection:
	references = [i for i in items if i.group == SourceGroup.REFERENCES]
	query_keywords = extract_keywords(f'{prompt} {essay_topic or ""}')

	scores = {i.id: round(relevance_score(query_keywords, i.display_name, i.excerpt_text), 4) for i in references}
	# Priority sources win ties
	ranked = sorted(references, key=lambda i: (-scores[i.id], not i.priority, i.order))

	selected = [i.id for i in ranked if scores[i.id] >= min_score][:top_k]
	if selected:
		reasoning = f'Selected {len(selected)} of {len(references)} references scoring at least {min_score:.2f}'
	else:
		selected = [i.id for i in ranked[:FALLBACK_COUNT]]
		reasoning = f'No reference reached {min_score:.2f}; kept the {len(selected)} closest matches'

	excluded = [i.id for i in ranked if i.id not in selected]
	return ReferenceSelection(selected_ids=selected, excluded_ids=excluded, reasoning=reasoning, scores=scores)


def rank_supplementary_chunks(
	chunks: list[EvidenceChunk],
	query: str,
	exclude_labels: set[str],
	limit: int,
	priority_ids: set[str] | None = None,
) -> list[EvidenceChunk]:
	"""Chunks outside ``exclude_labels`` that share keywords with the query, best first."""
	if limit <= 0:
		return []

	priority_ids = priority_ids or set()
	query_keywords = extract_keywords(query)

	scored = []
	for position, chunk in enumerate(chunks):
		if chunk.label in exclude_labels:
			continue
		score = relevance_score(query_keywords, '', chunk.excerpt_text)
		if score > 0:
			scored.append((-score, chunk.source_item_id not in priority_ids, position, chunk))

	scored.sort(key=lambda s: s[:3])
	return [s[3] for s in scored[:limit]]
