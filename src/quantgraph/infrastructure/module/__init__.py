"""
Node registry and (de)serialization.
"""

from ._registry import NodeRegistry, default_registry
from ._serialization import (
    extract_state_payload,
    load_state_payload_,
    node_from_config,
    node_to_config,
)

__all__ = [
    NodeRegistry.__name__,
    default_registry.__name__,
    node_to_config.__name__,
    node_from_config.__name__,
    extract_state_payload.__name__,
    load_state_payload_.__name__,
]
