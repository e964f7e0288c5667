"""Client-side payloads: chunk bodies and the bootstrap script.

Both are small JavaScript snippets operating on the client's translation
table (``window.__i18n__``):

    chunk body:   merges one chunk's translations into the table
    bootstrap:    creates the table with the locale, per-chunk hashes and
                  the flattened import graph (or, without chunks, with
                  every translation inlined)

Chunk names repeat across ``hashes`` and ``imports``, so the bootstrap
aliases each name to a short variable (a, b, ..., z, aa, ab, ...).

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping

from chunki18n.constants import CLIENT_GLOBAL

__all__ = ["build_chunk_body", "build_client_script", "generate_bb26"]

_ALPHABET = "abcdefghijklmnopqrstuvwxyz"


def generate_bb26(index: int) -> str:
    """Bijective base-26 name for a zero-based index.

    Examples:
        >>> [generate_bb26(i) for i in (0, 25, 26, 27, 701, 702)]
        ['a', 'z', 'aa', 'ab', 'zz', 'aaa']
    """
    if index < 0:
        msg = f"index must be non-negative, got {index}"
        raise ValueError(msg)
    letters: list[str] = []
    n = index + 1
    while n > 0:
        n, remainder = divmod(n - 1, 26)
        letters.append(_ALPHABET[remainder])
    return "".join(reversed(letters))


def _json(value: object) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def build_chunk_body(
    chunk_name: str, translations: Mapping[str, str], keys: Iterable[str]
) -> bytes:
    """Encoded payload of one chunk.

    Keys without a (non-empty) translation are left out.
    """
    subset = {key: translations[key] for key in keys if translations.get(key)}
    js = (
        f"/* chunki18n chunk: {chunk_name} */\n"
        "(function() {\n"
        f"  var i = {CLIENT_GLOBAL};\n"
        f"  if (i) Object.assign(i.translations, {_json(subset)});\n"
        "})();\n"
    )
    return js.encode("utf-8")


def build_client_script(
    locale: str,
    *,
    hashes: Mapping[str, str],
    imports: Mapping[str, Iterable[str]],
    translations: Mapping[str, str] | None = None,
) -> str:
    """Inline bootstrap script for a page.

    Args:
        locale: Locale the page renders in
        hashes: Chunk name -> content hash
        imports: Chunk name -> flattened translating imports
        translations: When given, inlined wholesale (no-chunk mode);
            hashes and imports are ignored

    Returns:
        Script source without surrounding tags
    """
    if translations is not None:
        payload = {"locale": locale, "hashes": {}, "imports": {}, "translations": dict(translations)}
        # Inline script: keep "</script>" out of the payload
        return f"{CLIENT_GLOBAL}={_json(payload)};".replace("<", "\\u003c")

    names: dict[str, None] = dict.fromkeys(hashes)
    for deps in imports.values():
        names.update(dict.fromkeys(deps))
    aliases = {name: generate_bb26(index) for index, name in enumerate(names)}

    declarations = ",".join(f"{alias}={_json(name)}" for name, alias in aliases.items())
    hashes_obj = ",".join(f"[{aliases[name]}]:{_json(value)}" for name, value in hashes.items())

    import_entries: list[str] = []
    for name, deps in imports.items():
        if name not in aliases:
            continue
        valid = [aliases[dep] for dep in deps if dep in aliases]
        if valid:
            import_entries.append(f"[{aliases[name]}]:[{','.join(valid)}]")

    prelude = f"var {declarations};" if declarations else ""
    return (
        f"(()=>{{{prelude}"
        f"{CLIENT_GLOBAL}={{locale:{_json(locale)},hashes:{{{hashes_obj}}},"
        f"imports:{{{','.join(import_entries)}}},translations:{{}}}};"
        "})();"
    ).replace("<", "\\u003c")
