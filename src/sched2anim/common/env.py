import os


def is_set(variable_name: str) -> bool:
    variable_value: str = os.getenv(variable_name, 'false').lower().strip()
    return variable_value == 'true' or variable_value == '1'

def is_debug() -> bool:
    return is_set('S2A_DEBUG')

def get_int(variable_name: str, default: int) -> int:
    variable_value: str|None = os.getenv(variable_name, None)
    if variable_value is None or variable_value.strip() == '':
        return default

    return int(variable_value)
