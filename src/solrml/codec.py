"""Reversible encoding of arbitrary field names into Solr-safe identifiers.

Solr does not restrict field names, but anything outside Java identifier
characters causes trouble in queries. Every character outside
``[0-9a-zA-Z_]`` is therefore written as its UTF-8 bytes in lowercase hex,
wrapped in ``_X`` and ``_``::

    tm_entity:node/body  ->  tm_entity_X3a_node_X2f_body

The introducer ``_X`` itself must be encoded too, so ``last_XMas`` becomes
``last_X5f58_Mas``. That keeps :func:`decode_solr_name` a left inverse of
:func:`encode_solr_name`, which is what makes the encoding injective.
"""

from __future__ import annotations

_SAFE = frozenset("0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_")
_HEX = frozenset("0123456789abcdef")
_INTRODUCER = "_X"


def _escape(chunk: str) -> str:
    return f"{_INTRODUCER}{chunk.encode('utf-8').hex()}_"


def encode_solr_name(name: str) -> str:
    """Encode *name* so it only contains ``[0-9a-zA-Z_]``."""
    out: list[str] = []
    i = 0
    n = len(name)
    while i < n:
        if name.startswith(_INTRODUCER, i):
            out.append(_escape(_INTRODUCER))
            i += 2
            continue
        ch = name[i]
        out.append(ch if ch in _SAFE else _escape(ch))
        i += 1
    return "".join(out)


def decode_solr_name(name: str) -> str:
    """Decode a name produced by :func:`encode_solr_name`.

    Malformed escapes (odd hex runs, bytes that are not UTF-8) are left as
    they are.
    """
    out: list[str] = []
    i = 0
    n = len(name)
    while i < n:
        if name.startswith(_INTRODUCER, i):
            j = i + 2
            while j < n and name[j] in _HEX:
                j += 1
            if j > i + 2 and j < n and name[j] == "_":
                try:
                    out.append(bytes.fromhex(name[i + 2 : j]).decode("utf-8"))
                except ValueError:
                    pass
                else:
                    i = j + 1
                    continue
            out.append(_INTRODUCER)
            i += 2
            continue
        out.append(name[i])
        i += 1
    return "".join(out)
