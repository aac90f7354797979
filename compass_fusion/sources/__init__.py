"""
Sample sources feeding the pipeline.

- remote: TCP server accepting JSON lines from a phone or other client
- replay: JSON lines read from a recorded file
"""

from compass_fusion.sources.messages import parse_line
from compass_fusion.sources.remote import RemoteSource, create_remote_source
from compass_fusion.sources.replay import replay_lines

__all__ = [
    "RemoteSource",
    "create_remote_source",
    "parse_line",
    "replay_lines",
]
