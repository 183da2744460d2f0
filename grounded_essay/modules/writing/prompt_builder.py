import math
from dataclasses import dataclass

from grounded_essay.models import EvidenceChunk, GenerationMode, OutlineRequest

MODE_INSTRUCTIONS = {
	GenerationMode.GROUNDED: (
		'Use ONLY the evidence provided. Every substantive sentence must be supported by a cited chunk. '
		'Do not add outside facts, statistics or examples.'
	),
	GenerationMode.MIXED: (
		'Ground the argument in the evidence provided and cite it. You may add widely accepted general '
		'knowledge without a citation, but never contradict the evidence.'
	),
	GenerationMode.TEACH: (
		'Write in an explanatory, teaching register that walks the reader through the ideas. Ground the '
		'explanation in the evidence provided and cite it. You may add unlabelled general background to '
		'clarify concepts, but never contradict the evidence.'
	),
}


@dataclass
class DraftingContext:
	thesis: str
	paragraph_index: int
	paragraph_title: str
	suggested_word_count: int
	intended_chunks: list[EvidenceChunk]
	supplementary_chunks: list[EvidenceChunk]
	request: OutlineRequest
	previous_paragraph_title: str | None = None


def paragraph_count_range(target_word_count: int, max_paragraphs: int) -> tuple[int, int]:
	low = max(1, math.ceil(target_word_count / 200))
	high = max(low, math.ceil(target_word_count / 150))
	return min(low, max_paragraphs), min(high, max_paragraphs)


def _format_chunks(chunks: list[EvidenceChunk]) -> str:
	chunks_str = ''
	for c in chunks:
		chunks_str += f'[{c.label}]\n{c.excerpt_text}\n\n'
	return chunks_str.strip()


def build_outline_prompts(
	request: OutlineRequest, chunks: list[EvidenceChunk], max_paragraphs: int
) -> tuple[str, str]:
	low, high = paragraph_count_range(request.target_word_count, max_paragraphs)
	chunks_str = _format_chunks(chunks)

	system_prompt = (
		'You are an expert academic writing tutor who plans evidence-grounded essays. '
		'You reply with valid JSON only.'
	)

	user_prompt = f"""Plan an essay outline for the assignment below.

### ASSIGNMENT PROMPT
{request.prompt}

### ESSAY TOPIC
{request.essay_topic or 'Derive the topic from the prompt.'}

### RUBRIC / ASSIGNMENT TITLE
{request.rubric or 'None provided.'}

### PARAMETERS
- Target length: {request.target_word_count} words
- Academic level: {request.academic_level.value}
- Citation style: {request.citation_style.value}
- Number of paragraphs: {low}-{high}

### MODE
{MODE_INSTRUCTIONS[request.mode]}

### AVAILABLE EVIDENCE CHUNKS (REFER TO THEM ONLY BY LABEL)
{chunks_str if chunks_str else 'No evidence chunks were supplied.'}

### OUTPUT FORMAT
Return ONLY valid JSON (no markdown, no explanations):

{{
  "thesis": "One-sentence thesis statement",
  "paragraphs": [
    {{
      "title": "Short paragraph heading",
      "chunk_labels": ["LABEL", "LABEL"],
      "weight": 1.0
    }}
  ]
}}

RULES:
1. Only use chunk labels from the list above. Do not invent labels.
2. "weight" is the paragraph's relative share of the essay length (introduction and conclusion are usually lighter).
3. Assign each chunk to the paragraph where it is most relevant.
"""
	return system_prompt, user_prompt


def build_expansion_prompts(context: DraftingContext) -> tuple[str, str]:
	request = context.request
	intended_str = _format_chunks(context.intended_chunks)
	supplementary_str = _format_chunks(context.supplementary_chunks)
	example_label = context.intended_chunks[0].label if context.intended_chunks else 'SOURCE:p1'

	system_prompt = (
		f'You are an expert academic writer producing {request.academic_level.value}-level prose. '
		'You write one essay paragraph at a time and cite evidence precisely.'
	)

	style_section = ''
	if request.style_sample:
		style_section = f"""
### STUDENT WRITING SAMPLE (MATCH THIS VOICE, DO NOT CITE IT)
{request.style_sample[:1500]}
"""

	user_prompt = f"""Write paragraph {context.paragraph_index + 1} of an essay.

### ESSAY THESIS
{context.thesis}

### ASSIGNMENT PROMPT
{request.prompt}

### THIS PARAGRAPH
Title: {context.paragraph_title}
Word count goal: about {context.suggested_word_count} words
Previous paragraph: {context.previous_paragraph_title or 'None, this is the opening paragraph.'}

### PLANNED EVIDENCE (CITE FROM THIS LIST FIRST)
{intended_str if intended_str else 'No chunks were planned for this paragraph.'}

### ADDITIONAL EVIDENCE (CITE ONLY IF RELEVANT)
{supplementary_str if supplementary_str else 'None.'}
{style_section}
### MODE
{MODE_INSTRUCTIONS[request.mode]}

### WRITING INSTRUCTIONS
1. TONE: {request.academic_level.value} academic prose, citation style {request.citation_style.value}.
2. CITATION RULE: Put the chunk label in square brackets right after the claim it supports, before the full stop.
Example: Chlorophyll absorbs mostly red and blue light [{example_label}].
Several chunks: ... [{example_label}; OTHER:p2].
3. NO HALLUCINATION: Only use labels listed above. Never invent labels.
4. Write a single paragraph of plain prose. No heading, no bullet points, no reference list.

Write the paragraph now.
"""
	return system_prompt, user_prompt


def build_contradiction_prompts(sentences: list[str], chunks: list[EvidenceChunk]) -> tuple[str, str]:
	sentences_str = '\n'.join([f'{i}. {s}' for i, s in enumerate(sentences)])

	system_prompt = 'You are a meticulous fact checker. You reply with valid JSON only.'

	user_prompt = f"""Check whether any of the numbered sentences CONTRADICTS the evidence.
Sentences that add information not found in the evidence are fine; only report direct contradictions.

### EVIDENCE
{_format_chunks(chunks) or 'No evidence.'}

### SENTENCES
{sentences_str}

Return ONLY valid JSON:
{{
  "contradictions": [
    {{"index": 0, "reason": "Short explanation of the contradiction"}}
  ]
}}
Return {{"contradictions": []}} when nothing contradicts the evidence.
"""
	return system_prompt, user_prompt
