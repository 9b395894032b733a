from dataclasses import fields, is_dataclass
from typing import Callable, Union, get_args, get_origin, get_type_hints


def deserialize(cls, data, resolvers: dict[type, Callable]|None = None):
    resolvers = resolvers or dict()
    hints: dict = get_type_hints(cls)

    args = {}
    for f in fields(cls):
        # leave missing keys to the dataclass defaults
        if f.name not in data:
            continue

        args[f.name] = _deserialize_value(hints[f.name], data.get(f.name), resolvers)

    return cls(**args)

def _deserialize_value(value_type, val, resolvers: dict[type, Callable]):
    if val is None:
        return None

    origin = get_origin(value_type)
    if origin is Union:
        value_type = next(a for a in get_args(value_type) if a is not type(None))
        origin = get_origin(value_type)

    if value_type in resolvers:
        return resolvers[value_type](val)
    elif is_dataclass(value_type) and isinstance(val, dict):
        return deserialize(value_type, val, resolvers)
    elif origin is list:
        return [_deserialize_value(get_args(value_type)[0], v, resolvers) for v in val]
    elif origin is tuple:
        return tuple(val)

    return val
