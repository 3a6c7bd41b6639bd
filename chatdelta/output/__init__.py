"""Output rendering modules"""

from chatdelta.output.metrics_display import format_metrics
from chatdelta.output.renderer import OutputRenderer, save_responses, write_transcript

__all__ = ["OutputRenderer", "format_metrics", "save_responses", "write_transcript"]
