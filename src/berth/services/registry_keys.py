"""Key layout of berth data in the registry store.

    <prefix>/catalog/<source_index>/<name>/<version>   PackageDefinition JSON
    <prefix>/sources/<source_index>                    SourceRecord JSON
"""


def catalog_prefix(key_prefix: str) -> str:
    return f"{key_prefix}/catalog/"


def catalog_key(key_prefix: str, source_index: int, name: str, version: str) -> str:
    return f"{key_prefix}/catalog/{source_index}/{name}/{version}"


def parse_catalog_key(key_prefix: str, key: str) -> tuple[int, str, str] | None:
    """Split a catalog key into (source_index, name, version).

    Returns None for keys that are not catalog entries.
    """
    prefix = catalog_prefix(key_prefix)
    if not key.startswith(prefix):
        return None
    parts = key[len(prefix) :].split("/")
    if len(parts) != 3 or not parts[0].isdigit() or not parts[1] or not parts[2]:
        return None
    return int(parts[0]), parts[1], parts[2]


def source_key(key_prefix: str, source_index: int) -> str:
    return f"{key_prefix}/sources/{source_index}"
