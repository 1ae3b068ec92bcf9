"""
Request pipeline: fetch → adapt → compile → evaluate → partition → render.
"""

from feedcel.pipeline.filter_pipeline import FilterPipeline, FilterResponse, utc_now

__all__ = [
    "FilterPipeline",
    "FilterResponse",
    "utc_now",
]
