from grounded_essay.models import EvidenceChunk, SourceGroup, SourceItem

PAGE_BREAK = '\f'

GROUP_RANK = {SourceGroup.REFERENCES: 0, SourceGroup.NOTES: 1}


def chunk_label(source_item_id: str, page: int) -> str:
	return f'{source_item_id}:p{page}'


def index(source_items: list[SourceItem]) -> list[EvidenceChunk]:
	"""Turn source items into citable chunks.

	Pages are split on form feeds. Labels depend only on the item id and the
	1-based page number, so unrelated edits never relabel another item's
	chunks. A single-page item is always labelled ``<id>:p1``; its
	``page_number`` is only set when the item's page count is known. Blank
	pages produce no chunk.
	"""
	ordered = sorted(source_items, key=lambda i: (GROUP_RANK[i.group], not i.priority, i.order, i.id))

	chunks: list[EvidenceChunk] = []
	for item in ordered:
		pages = item.excerpt_text.split(PAGE_BREAK)
		paginated = len(pages) > 1 or item.page_count is not None

		for page_number, page_text in enumerate(pages, start=1):
			text = page_text.strip()
			if not text:
				continue
			chunks.append(
				EvidenceChunk(
					label=chunk_label(item.id, page_number),
					source_item_id=item.id,
					excerpt_text=text,
					page_number=page_number if paginated else None,
				)
			)

	return chunks


def chunks_by_label(chunks: list[EvidenceChunk]) -> dict[str, EvidenceChunk]:
	return {c.label: c for c in chunks}
