"""
JSON-safe (de)serialization of nodes.

Config format
-------------
{
  "op_type": "Dense",
  "name": "fc1",
  "arithmetic": "float16",
  "attributes": {...},
  "parameters": {"linear.weights": <entry>, "bias.biases": <entry>},
  "buffers": {"scale": <entry>, ...}          # frozen tensors, if any
}

Each entry is ``{"name": ..., "requires_grad": ..., "value": <b64 payload>}``
(see `quantgraph.infrastructure.encoding`). Rebuilding goes through a
`NodeRegistry`, so only registered operation tags can be loaded.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import numpy as np

from ._registry import NodeRegistry
from .._node import Node
from .._parameter import Parameter
from ..encoding._b64 import ndarray_to_payload, payload_to_ndarray
from ..numeric import arithmetic_for
from ..tensor._tensor import Tensor
from ...domain._arithmetic import IArithmetic
from ...domain._engine import IEngine
from ...domain._errors import ShapeMismatchError, ValidationError
from ...domain._tensor import ITensor


def _entry(name: str, value: ITensor, requires_grad: bool) -> Dict[str, Any]:
    return {
        "name": name,
        "requires_grad": bool(requires_grad),
        "value": ndarray_to_payload(value.to_numpy()),
    }


def _parameter_from_entry(
    key: str, entry: Mapping[str, Any], arithmetic: Optional[IArithmetic]
) -> Parameter:
    arr = payload_to_ndarray(entry["value"])
    if arithmetic is not None:
        arr = arithmetic.cast(arr)
    return Parameter(
        str(entry.get("name") or key),
        Tensor.from_numpy(arr),
        requires_grad=bool(entry.get("requires_grad", True)),
        arithmetic=arithmetic,
    )


def node_to_config(node: Node) -> Dict[str, Any]:
    """
    Convert a node into a JSON-serializable configuration.
    """
    params = {
        path: _entry(p.name, p.value, p.requires_grad)
        for path, p in node.named_parameters()
    }
    cfg: Dict[str, Any] = {
        "op_type": node.op_type,
        "name": node.name,
        "arithmetic": node.arithmetic.name,
        "attributes": dict(node.attributes()),
        "parameters": params,
    }
    get_buffers = getattr(node, "buffers", None)
    if callable(get_buffers):
        cfg["buffers"] = {
            key: _entry(key, t, False) for key, t in get_buffers().items()
        }
    return cfg


def node_from_config(
    registry: NodeRegistry,
    engine: IEngine,
    config: Mapping[str, Any],
    arithmetic: Optional[IArithmetic] = None,
) -> Node:
    """
    Rebuild a node from `node_to_config` output.

    Parameters
    ----------
    registry : NodeRegistry
        Registry holding a builder for ``config["op_type"]``.
    engine : IEngine
        Engine the rebuilt node computes with.
    config : Mapping
        The configuration.
    arithmetic : Optional[IArithmetic]
        Element type; defaults to the one recorded in the config, then to
        ``engine.arithmetic``.

    Raises
    ------
    UnknownNodeTypeError
        If the operation tag is not registered.
    ValidationError
        If required keys are missing.
    """
    try:
        op_type = str(config["op_type"])
        name = str(config["name"])
    except KeyError as e:
        raise ValidationError(f"node config is missing {e}") from e

    if arithmetic is None:
        recorded = config.get("arithmetic")
        arithmetic = arithmetic_for(recorded) if recorded else engine.arithmetic

    params: Dict[str, Parameter] = {
        str(path): _parameter_from_entry(str(path), entry, arithmetic)
        for path, entry in (config.get("parameters") or {}).items()
    }
    for key, entry in (config.get("buffers") or {}).items():
        params[str(key)] = _parameter_from_entry(str(key), entry, None)

    return registry.build(
        op_type, engine, arithmetic, name, params, dict(config.get("attributes") or {})
    )


def extract_state_payload(node: Node) -> Dict[str, Dict[str, Any]]:
    """
    Extract parameter values into payloads keyed by attribute path.
    """
    return {
        str(path): ndarray_to_payload(np.asarray(p.value.to_numpy()))
        for path, p in node.named_parameters()
    }


def load_state_payload_(node: Node, payloads: Mapping[str, Mapping[str, Any]]) -> None:
    """
    In-place load of parameter values from payloads.

    Values are converted into each parameter's element type.

    Raises
    ------
    KeyError
        If a parameter path is missing from `payloads`.
    ShapeMismatchError
        If a stored shape does not match the parameter.
    """
    for path, p in node.named_parameters():
        key = str(path)
        if key not in payloads:
            raise KeyError(f"Missing parameter in checkpoint: '{key}'")
        arr = payload_to_ndarray(dict(payloads[key]))
        target_shape = tuple(p.value.shape)
        if tuple(arr.shape) != target_shape:
            raise ShapeMismatchError(
                f"Shape mismatch for '{key}': node {target_shape} vs checkpoint {arr.shape}"
            )
        p.value.copy_from_numpy(node.arithmetic.cast(arr))


__all__ = [
    node_to_config.__name__,
    node_from_config.__name__,
    extract_state_payload.__name__,
    load_state_payload_.__name__,
]
