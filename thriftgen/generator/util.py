"""Naming helpers shared by the generators."""

import keyword

STRUCT_RESERVED = frozenset(["read", "write"])
CLIENT_RESERVED = frozenset(["dispatch", "new_seqid", "pending", "seqid"])


def to_camel_case(name: str) -> str:
    """``get_user`` and ``getUser`` both become ``GetUser``."""
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


def py_name(name: str, reserved: frozenset[str] = STRUCT_RESERVED) -> str:
    """Make a Thrift identifier safe to use as a Python attribute."""
    if keyword.iskeyword(name) or keyword.issoftkeyword(name) or name in reserved:
        return name + "_"
    return name
