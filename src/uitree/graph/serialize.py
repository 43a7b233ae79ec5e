"""Document serialization - Convert between JSON documents and node forests.

A document is a JSON array of root nodes (see the README for the node
shape). Exports may also be wrapped in an envelope
``{"version", "exportTime", "treeData"}``; imports accept either form.

Reference nodes are written with ``children: []``: their subtree is
regenerated from the referenced root when the document is loaded into a
store.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from uitree.graph.errors import ValidationError
from uitree.graph.ids import IdentifierCodec
from uitree.graph.nodes import (
    LAYOUTS,
    Constraint,
    ConstraintPackage,
    ConstraintReference,
    ReferenceNode,
    StandardNode,
    UINode,
)

logger = logging.getLogger(__name__)

DOCUMENT_VERSION = "1.0.0"
SUPPORTED_VERSIONS = ("1.0.0",)

MAX_NAME_LENGTH = 100
MAX_TYPE_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 1000
MAX_ATTRIBUTE_KEY_LENGTH = 50

# Document key -> UINode attribute, for fields every node carries
FIELD_KEYS = {
    "id": "id",
    "name": "name",
    "type": "type",
    "layout": "layout",
    "attributes": "attributes",
    "constraintPackages": "constraint_packages",
    "functions": "functions",
    "memberVariables": "member_variables",
    "protocols": "protocols",
    "children": "children",
}
REFERENCE_KEYS = ("isVirtual", "referencedRootType")
LIST_KEYS = ("constraintPackages", "functions", "memberVariables", "protocols", "children")

# Keys update_node() refuses to touch
PROTECTED_KEYS = ("id", "children") + REFERENCE_KEYS

_codec = IdentifierCodec()


# ─────────────────────────────────────────────────────────────────────────────
# Validation
# ─────────────────────────────────────────────────────────────────────────────


def _validate_packages(packages: Any, where: str) -> list[str]:
    errors: list[str] = []
    if not isinstance(packages, list):
        return [f"{where}: constraintPackages must be an array"]
    for i, package in enumerate(packages):
        if not isinstance(package, Mapping):
            errors.append(f"{where}: constraint package #{i + 1} must be an object")
            continue
        if not isinstance(package.get("name", ""), str):
            errors.append(f"{where}: constraint package #{i + 1} name must be a string")
        constraints = package.get("constraints", [])
        if not isinstance(constraints, list):
            errors.append(f"{where}: constraint package #{i + 1} constraints must be an array")
            continue
        for j, constraint in enumerate(constraints):
            label = f"{where}: constraint #{j + 1} of package #{i + 1}"
            if not isinstance(constraint, Mapping) or not isinstance(constraint.get("type"), str):
                errors.append(f"{label} must be an object with a string type")
                continue
            reference = constraint.get("reference")
            if reference is not None and (
                not isinstance(reference, Mapping)
                or not isinstance(reference.get("nodeId", ""), str)
            ):
                errors.append(f"{label} has a malformed reference")
    return errors


def validate_fields(data: Mapping[str, Any], where: str) -> list[str]:
    """Validate the optional fields of a node or update payload."""
    errors: list[str] = []
    if "name" in data:
        name = data["name"]
        if not isinstance(name, str) or not name:
            errors.append(f"{where}: name must be a non-empty string")
        elif len(name) > MAX_NAME_LENGTH:
            errors.append(f"{where}: name exceeds {MAX_NAME_LENGTH} characters")
    if "type" in data:
        node_type = data["type"]
        if not isinstance(node_type, str) or not node_type:
            errors.append(f"{where}: type must be a non-empty string")
        elif len(node_type) > MAX_TYPE_LENGTH:
            errors.append(f"{where}: type exceeds {MAX_TYPE_LENGTH} characters")
    if data.get("layout") is not None and data["layout"] not in LAYOUTS:
        errors.append(f"{where}: layout must be 'horizontal' or 'vertical'")
    if "attributes" in data and not isinstance(data["attributes"], Mapping):
        errors.append(f"{where}: attributes must be an object")
    for key in LIST_KEYS:
        if key in data and key != "constraintPackages" and not isinstance(data[key], list):
            errors.append(f"{where}: {key} must be an array")
    if "constraintPackages" in data:
        errors.extend(_validate_packages(data["constraintPackages"], where))
    description = data.get("description")
    if isinstance(description, str) and len(description) > MAX_DESCRIPTION_LENGTH:
        errors.append(f"{where}: description exceeds {MAX_DESCRIPTION_LENGTH} characters")
    return errors


def validate_node(data: Any, strict_ids: bool = True, where: str = "") -> list[str]:
    """Collect every validation error of a node dict and its children.

    Args:
        data: Candidate node.
        strict_ids: Also require IDs to be well-formed hierarchical codes.
        where: Location prefix for messages (defaults to the node's ID).

    Returns:
        List of error messages; empty when the node is valid.
    """
    if not isinstance(data, Mapping):
        return [f"{where or 'node'}: node must be an object"]

    node_id = data.get("id")
    where = where or (node_id if isinstance(node_id, str) and node_id else "node")
    errors: list[str] = []

    if not isinstance(node_id, str) or not node_id:
        errors.append(f"{where}: id is required")
    elif strict_ids and not _codec.is_valid(node_id):
        errors.append(f"{where}: invalid node id '{node_id}'")
    for key in ("name", "type"):
        if key not in data:
            errors.append(f"{where}: {key} is required")
    errors.extend(validate_fields(data, where))

    if data.get("isVirtual"):
        ref_type = data.get("referencedRootType")
        if not isinstance(ref_type, str) or not ref_type:
            errors.append(f"{where}: reference node requires referencedRootType")

    children = data.get("children", [])
    if isinstance(children, list):
        for child in children:
            errors.extend(validate_node(child, strict_ids))
    return errors


def validate_forest(document: Any, strict_ids: bool = True) -> list[str]:
    """Validate a whole document array, including root ID uniqueness."""
    if not isinstance(document, list):
        return ["document must be an array of root nodes"]
    errors: list[str] = []
    seen: set[str] = set()
    for root in document:
        if isinstance(root, Mapping):
            root_id = root.get("id")
            if isinstance(root_id, str) and root_id in seen:
                errors.append(f"{root_id}: duplicate root id")
            if isinstance(root_id, str):
                seen.add(root_id)
        errors.extend(validate_node(root, strict_ids))
    return errors


def sanitize_node(data: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize a node dict: fill defaults and drop malformed optional fields.

    Required fields get placeholder values rather than being rejected.
    """
    sanitized = dict(data)
    if not isinstance(sanitized.get("id"), str) or not sanitized["id"]:
        sanitized["id"] = "01"
    if not isinstance(sanitized.get("name"), str) or not sanitized["name"]:
        sanitized["name"] = "Untitled"
    if not isinstance(sanitized.get("type"), str) or not sanitized["type"]:
        sanitized["type"] = "UIView"

    attributes = sanitized.get("attributes")
    if isinstance(attributes, Mapping):
        sanitized["attributes"] = {
            k: v
            for k, v in attributes.items()
            if isinstance(k, str) and 0 < len(k) <= MAX_ATTRIBUTE_KEY_LENGTH
        }
    else:
        sanitized["attributes"] = {}

    for key in LIST_KEYS:
        if not isinstance(sanitized.get(key), list):
            sanitized[key] = []
    # Legacy flat constraint list, superseded by constraintPackages
    sanitized.pop("constraints", None)

    if sanitized.get("layout") not in LAYOUTS:
        sanitized["layout"] = "horizontal"

    description = sanitized.get("description")
    if isinstance(description, str):
        sanitized["description"] = description[:MAX_DESCRIPTION_LENGTH]
    else:
        sanitized["description"] = ""

    sanitized["children"] = [
        sanitize_node(child) for child in sanitized["children"] if isinstance(child, Mapping)
    ]
    return sanitized


# ─────────────────────────────────────────────────────────────────────────────
# Dict -> node
# ─────────────────────────────────────────────────────────────────────────────


def _constraint_from_dict(data: Mapping[str, Any]) -> Constraint:
    known = ("type", "relation", "value", "attribute", "reference")
    reference = None
    raw_ref = data.get("reference")
    if isinstance(raw_ref, Mapping):
        reference = ConstraintReference(
            node_id=raw_ref.get("nodeId", "") or "",
            attribute=raw_ref.get("attribute"),
        )
    return Constraint(
        type=data["type"],
        relation=data.get("relation", "equalTo"),
        value=data.get("value", 0),
        attribute=data.get("attribute"),
        reference=reference,
        extra={k: v for k, v in data.items() if k not in known},
    )


def packages_from_list(packages: list[Mapping[str, Any]]) -> list[ConstraintPackage]:
    """Build ConstraintPackage objects from their document form."""
    known = ("name", "isDefault", "constraints")
    return [
        ConstraintPackage(
            name=package.get("name", ""),
            is_default=bool(package.get("isDefault", False)),
            constraints=[_constraint_from_dict(c) for c in package.get("constraints", [])],
            extra={k: v for k, v in package.items() if k not in known},
        )
        for package in packages
    ]


def _build_node(data: Mapping[str, Any]) -> UINode:
    extra = {k: v for k, v in data.items() if k not in FIELD_KEYS and k not in REFERENCE_KEYS}
    values: dict[str, Any] = {
        "id": data["id"],
        "name": data["name"],
        "type": data["type"],
        "layout": data.get("layout"),
        "attributes": dict(data.get("attributes") or {}),
        "constraint_packages": packages_from_list(data.get("constraintPackages") or []),
        "functions": list(data.get("functions") or []),
        "member_variables": list(data.get("memberVariables") or []),
        "protocols": list(data.get("protocols") or []),
        "extra": extra,
    }
    if data.get("isVirtual"):
        return ReferenceNode(**values, referenced_root_type=data["referencedRootType"])
    values["children"] = [_build_node(child) for child in data.get("children") or []]
    return StandardNode(**values)


def node_from_dict(data: Any, strict_ids: bool = False) -> UINode:
    """Build a node (and its subtree) from its document form.

    Raises:
        ValidationError: If the dict fails validation; nothing is built.
    """
    errors = validate_node(data, strict_ids)
    if errors:
        raise ValidationError(f"Invalid node: {errors[0]}", errors)
    return _build_node(data)


def forest_from_document(document: Any, strict_ids: bool = False) -> list[UINode]:
    """Build a forest from a document array.

    Raises:
        ValidationError: If any node is invalid.
    """
    errors = validate_forest(document, strict_ids)
    if errors:
        raise ValidationError(f"Invalid document: {errors[0]}", errors)
    return [_build_node(root) for root in document]


# ─────────────────────────────────────────────────────────────────────────────
# Node -> dict
# ─────────────────────────────────────────────────────────────────────────────


def _constraint_to_dict(constraint: Constraint) -> dict[str, Any]:
    result: dict[str, Any] = dict(constraint.extra)
    result.update(
        {"type": constraint.type, "relation": constraint.relation, "value": constraint.value}
    )
    if constraint.attribute is not None:
        result["attribute"] = constraint.attribute
    if constraint.reference is not None:
        reference: dict[str, Any] = {"nodeId": constraint.reference.node_id}
        if constraint.reference.attribute is not None:
            reference["attribute"] = constraint.reference.attribute
        result["reference"] = reference
    return result


def packages_to_list(packages: list[ConstraintPackage]) -> list[dict[str, Any]]:
    """Document form of a node's constraint packages."""
    result = []
    for package in packages:
        entry: dict[str, Any] = dict(package.extra)
        entry.update(
            {
                "name": package.name,
                "isDefault": package.is_default,
                "constraints": [_constraint_to_dict(c) for c in package.constraints],
            }
        )
        result.append(entry)
    return result


def node_to_dict(node: UINode, include_materialized: bool = False) -> dict[str, Any]:
    """Serialize a node and its subtree to its document form.

    Args:
        node: The node to serialize.
        include_materialized: Emit reference nodes' materialized children
            (for display); documents written to disk leave them out.
    """
    result: dict[str, Any] = dict(node.extra)
    result.update({"id": node.id, "name": node.name, "type": node.type})
    if node.layout is not None:
        result["layout"] = node.layout
    if node.attributes:
        result["attributes"] = dict(node.attributes)
    if node.constraint_packages:
        result["constraintPackages"] = packages_to_list(node.constraint_packages)
    if node.functions:
        result["functions"] = list(node.functions)
    if node.member_variables:
        result["memberVariables"] = list(node.member_variables)
    if node.protocols:
        result["protocols"] = list(node.protocols)

    if isinstance(node, ReferenceNode):
        result["isVirtual"] = True
        result["referencedRootType"] = node.referenced_root_type
        if node.stale:
            result["isStale"] = True
        if not include_materialized:
            result["children"] = []
            return result
    result["children"] = [node_to_dict(child, include_materialized) for child in node.children]
    return result


def forest_to_document(forest: list[UINode], include_materialized: bool = False) -> list[dict]:
    """Serialize a forest to a document array."""
    return [node_to_dict(root, include_materialized) for root in forest]


# ─────────────────────────────────────────────────────────────────────────────
# Envelope and file I/O
# ─────────────────────────────────────────────────────────────────────────────


def export_state(forest: list[UINode], settings: dict[str, Any] | None = None) -> dict[str, Any]:
    """Wrap a forest in the versioned export envelope."""
    envelope: dict[str, Any] = {
        "version": DOCUMENT_VERSION,
        "exportTime": datetime.now().isoformat(),
        "treeData": forest_to_document(forest),
    }
    if settings:
        envelope["settings"] = settings
    return envelope


def import_document(data: Any, sanitize: bool = False) -> list[UINode]:
    """Build a forest from a bare document array or an export envelope.

    Args:
        data: Parsed JSON.
        sanitize: Normalize nodes with sanitize_node() before validation.

    Raises:
        ValidationError: On unsupported versions or invalid nodes.
    """
    if isinstance(data, Mapping):
        version = data.get("version")
        if version is None:
            logger.warning("Document version not specified; assuming %s", DOCUMENT_VERSION)
        elif version not in SUPPORTED_VERSIONS:
            supported = ", ".join(SUPPORTED_VERSIONS)
            raise ValidationError(f"Unsupported version: {version} (supported: {supported})")
        tree_data = data.get("treeData")
        if not isinstance(tree_data, list):
            raise ValidationError("Envelope is missing treeData")
        data = tree_data
    if not isinstance(data, list):
        raise ValidationError("Document must be an array of root nodes or an export envelope")
    if sanitize:
        data = [sanitize_node(node) for node in data if isinstance(node, Mapping)]
    return forest_from_document(data)


def dumps_document(forest: list[UINode], indent: int | None = 2, envelope: bool = False) -> str:
    """Serialize a forest to JSON text."""
    data: Any = export_state(forest) if envelope else forest_to_document(forest)
    return json.dumps(data, indent=indent, ensure_ascii=False)


def load_document(path: Path, sanitize: bool = False) -> list[UINode]:
    """Read and parse a document file.

    Raises:
        ValidationError: If the file is not valid JSON or not a valid document.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValidationError(f"{path}: not valid JSON ({e})") from e
    return import_document(data, sanitize=sanitize)


def save_document(
    path: Path,
    forest: list[UINode],
    indent: int | None = 2,
    envelope: bool = False,
) -> None:
    """Write a document file atomically (temp file + rename)."""
    path = Path(path)
    text = dumps_document(forest, indent=indent, envelope=envelope)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.debug("Saved document to %s", path)


__all__ = [
    "DOCUMENT_VERSION",
    "SUPPORTED_VERSIONS",
    "FIELD_KEYS",
    "PROTECTED_KEYS",
    "validate_fields",
    "validate_node",
    "validate_forest",
    "sanitize_node",
    "packages_from_list",
    "packages_to_list",
    "node_from_dict",
    "forest_from_document",
    "node_to_dict",
    "forest_to_document",
    "export_state",
    "import_document",
    "dumps_document",
    "load_document",
    "save_document",
]
