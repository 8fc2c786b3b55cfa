"""Result renderers. Thin and downstream of parsing."""

from buildsift.output.annotations import render_annotations, summary_message
from buildsift.output.structured import render_json, result_document

__all__ = ["render_annotations", "render_json", "result_document", "summary_message"]
