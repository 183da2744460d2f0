from .indexer import chunk_label, chunks_by_label, index
from .relevance import extract_keywords, rank_supplementary_chunks, relevance_score, select_references

__all__ = [
	'chunk_label',
	'chunks_by_label',
	'index',
	'extract_keywords',
	'rank_supplementary_chunks',
	'relevance_score',
	'select_references',
]
