from .assembler import annotate_citations, assemble, build_references, essay_stats, export_essay, strip_citations

__all__ = ['annotate_citations', 'assemble', 'build_references', 'essay_stats', 'export_essay', 'strip_citations']
