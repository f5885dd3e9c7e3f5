"""Export helpers for distance transform outputs."""

from .json_exporter import export_distance_result_to_json

__all__ = [
    "export_distance_result_to_json",
]
