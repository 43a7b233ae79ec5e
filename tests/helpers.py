"""Node-dict builders shared by the test modules."""


def node(node_id, name, node_type="UIView", children=None, **fields):
    """Build a node dict in document form."""
    data = {"id": node_id, "name": name, "type": node_type, "children": children or []}
    data.update(fields)
    return data


def reference(node_id, type_name, name=None):
    """Build a reference node dict aliasing *type_name*."""
    return {
        "id": node_id,
        "name": name or type_name,
        "type": type_name,
        "isVirtual": True,
        "referencedRootType": type_name,
        "children": [],
    }


def constraint_to(target_id, constraint_type="top", value=8):
    """A single default constraint package pointing at *target_id*."""
    return [
        {
            "name": "default",
            "isDefault": True,
            "constraints": [
                {
                    "type": constraint_type,
                    "relation": "equalTo",
                    "value": value,
                    "reference": {"nodeId": target_id},
                }
            ],
        }
    ]
