import yaml
import jsonpickle
from benedict import benedict
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

KEYPATH_SEPARATOR = "/"


def compute_namespace(resource_namespace: str, target_namespace: Optional[str]) -> str:
    """Namespace of a referenced object, defaulting to the referencing resource's."""
    return target_namespace if target_namespace else resource_namespace


def sort_dict_keys(d):
    """Recursively sort dictionary keys and handle nested structures.

    Args:
        d: Data structure (dict, list, or primitive type)

    Returns:
        Sorted version of the data structure
    """
    if isinstance(d, dict):
        return {key: sort_dict_keys(value) for key, value in sorted(d.items())}
    elif isinstance(d, list):
        return [sort_dict_keys(item) for item in d]
    else:
        return d


def canonicalize_dict(data):
    """
    Returns a canonical JSON representation of a dictionary.

    The JSON string uses sorted keys, which ensures that the representation
    of the dictionary remains consistent even when key order varies.
    This function works recursively for nested dictionaries and handles lists too.
    """
    return jsonpickle.dumps(sort_dict_keys(data), unpicklable=False)


def is_subset(desired: Any, observed: Any) -> bool:
    """Return True if every value set in `desired` is present, with the same
    value, in `observed`.

    Keys present only in `observed` are ignored, so fields defaulted by the
    API server never register as drift. Lists must have the same length and
    match element by element.
    """
    if isinstance(desired, Mapping):
        if not isinstance(observed, Mapping):
            return False
        return all(
            key in observed and is_subset(value, observed[key])
            for key, value in desired.items()
        )
    if isinstance(desired, (list, tuple)):
        if not isinstance(observed, (list, tuple)) or len(desired) != len(observed):
            return False
        return all(is_subset(d, o) for d, o in zip(desired, observed))
    return desired == observed


def escape_json_pointer(token: str) -> str:
    """Escape a single JSON pointer reference token (RFC 6901)."""
    return token.replace("~", "~0").replace("/", "~1")


def json_pointer(*tokens: str) -> str:
    return "/" + "/".join(escape_json_pointer(str(t)) for t in tokens)


def get_path(data: Mapping, path: Sequence[str], default: Any = None) -> Any:
    """Return the value at `path` in nested mappings, or `default`."""
    current = data
    for key in path:
        if not isinstance(current, Mapping) or key not in current:
            return default
        current = current[key]
    return current


def load_yaml(document: str) -> Dict:
    """Parse a YAML document that must contain a mapping."""
    data = yaml.safe_load(document) if document else None
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("YAML document must contain a mapping at the top level")
    return data


def dump_yaml(data: Mapping) -> str:
    return yaml.dump(
        data,
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=True,
        Dumper=yaml.SafeDumper,
    )


def edit_yaml_document(document: str, values: Mapping[str, Any]) -> str:
    """Set keypath values (e.g. ``homeserver/address``) in a YAML document.

    Keypaths use ``/`` as separator since configuration keys (domains,
    Matrix IDs) frequently contain dots.
    """
    config = benedict(load_yaml(document), keypath_separator=KEYPATH_SEPARATOR)
    for keypath, value in values.items():
        config[keypath] = value
    return dump_yaml(config.dict())


def read_yaml_values(document: str, keypaths: Iterable[str]) -> Dict[str, Any]:
    """Read keypath values from a YAML document; missing keys map to None."""
    config = benedict(load_yaml(document), keypath_separator=KEYPATH_SEPARATOR)
    return {keypath: config.get(keypath) for keypath in keypaths}
