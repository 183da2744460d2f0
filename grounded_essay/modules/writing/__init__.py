from .drafting import CitationParser, ParsedParagraph, ParsedSentence, marker_labels
from .prompt_builder import DraftingContext, build_contradiction_prompts, build_expansion_prompts, build_outline_prompts

__all__ = [
	'CitationParser',
	'DraftingContext',
	'ParsedParagraph',
	'ParsedSentence',
	'build_contradiction_prompts',
	'build_expansion_prompts',
	'build_outline_prompts',
	'marker_labels',
]
