"""Registry of page types (templates) available to a site."""

from grove.storage.base import Storage

MODULAR_TEMPLATES_DIR = "modular"


class PageTypes:
    """Template names found under the templates directory.

    A template file ``blog.html`` defines the ``blog`` type; files under
    ``templates/modular/`` define modular types.
    """

    def __init__(self) -> None:
        self._types: list[str] = []
        self._modular: list[str] = []

    @classmethod
    def scan(cls, storage: Storage, templates_path: str) -> "PageTypes":
        types = cls()
        if not storage.is_dir(templates_path):
            return types
        for entry in storage.list_dir(templates_path):
            if entry.name.startswith("."):
                continue
            if entry.is_dir:
                if entry.name == MODULAR_TEMPLATES_DIR:
                    for inner in storage.list_dir(entry.path):
                        if not inner.is_dir and not inner.name.startswith("."):
                            types._add(types._modular, inner.name)
                continue
            types._add(types._types, entry.name)
        return types

    @staticmethod
    def _add(target: list[str], filename: str) -> None:
        name = filename.split(".", 1)[0]
        if name and name not in target:
            target.append(name)

    def types(self) -> list[str]:
        return list(self._types)

    def modular_types(self) -> list[str]:
        return list(self._modular)

    def __contains__(self, name: str) -> bool:
        return name in self._types or name in self._modular
