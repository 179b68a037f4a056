"""Document model: one node of the content tree."""

import hashlib
import time
from dataclasses import asdict, dataclass, field
from typing import Any

from grove.constants import DEFAULT_TEMPLATE, MODULAR_PREFIX, ORDER_PREFIX_RE
from grove.pages.dates import to_timestamp
from grove.pages.frontmatter import parse_frontmatter

_MISSING = object()


def get_nested(data: Any, dotted: str, default: Any = None) -> Any:
    """Look up a dotted path ("content.order.by") in nested mappings."""
    current = data
    for part in dotted.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return default
    return current


def slug_from_folder(folder: str) -> str:
    """Derive a slug from a folder name, dropping any "01." order prefix."""
    match = ORDER_PREFIX_RE.match(folder)
    name = match.group(2) if match else folder
    return name.lower()


@dataclass
class Document:
    """A content node.

    Most attributes are resolved once by the tree builder and stored so the
    whole document survives a JSON snapshot round-trip. Header derived values
    that depend on the clock (``published``) are computed on access.
    """

    path: str
    parent_path: str | None = None
    folder: str = ""
    slug: str = ""
    file_path: str | None = None
    extension: str = ""
    template: str = DEFAULT_TEMPLATE
    header: dict[str, Any] = field(default_factory=dict)
    content: str = ""
    modified: int = 0
    id: str = ""
    route: str = ""
    raw_route: str = ""
    routable: bool = True
    visible: bool = False
    order_by: str = "default"
    order_dir: str = "asc"
    root: bool = False

    @classmethod
    def for_folder(cls, path: str, parent: "Document | None" = None) -> "Document":
        """Create a document for a storage folder before its content is read."""
        folder = path.rstrip("/").rsplit("/", 1)[-1]
        return cls(
            path=path,
            parent_path=parent.path if parent else None,
            folder=folder,
            slug=slug_from_folder(folder),
            visible=bool(ORDER_PREFIX_RE.match(folder)),
            root=parent is None,
        )

    def init_content(self, file_path: str, extension: str, text: str) -> None:
        """Populate the document from its content file.

        Args:
            file_path: Path of the selected content file.
            extension: Matched content extension (e.g. ".md", ".en.md").
            text: Raw file content.
        """
        header, body = parse_frontmatter(text)
        self.init_header(file_path, extension, header or {}, body)

    def init_header(
        self,
        file_path: str,
        extension: str,
        header: dict[str, Any],
        body: str = "",
        template: str | None = None,
    ) -> None:
        """Populate the document from an already parsed header and body."""
        self.header = dict(header)
        self.content = body
        self.file_path = file_path
        self.extension = extension

        filename = file_path.rsplit("/", 1)[-1]
        default_template = filename[: -len(extension)] if extension else filename
        self.template = str(self.header.get("template") or template or default_template)

        if self.header.get("slug"):
            self.slug = str(self.header["slug"]).strip("/")
        if "visible" in self.header:
            self.visible = bool(self.header["visible"])
        if "routable" in self.header:
            self.routable = bool(self.header["routable"])

    @property
    def title(self) -> str:
        title = self.header.get("title")
        if title:
            return str(title)
        return self.slug[:1].upper() + self.slug[1:]

    @property
    def date(self) -> int:
        parsed = to_timestamp(self.header.get("date"))
        return parsed if parsed is not None else self.modified

    @property
    def publish_date(self) -> int | None:
        return to_timestamp(self.header.get("publish_date"))

    @property
    def unpublish_date(self) -> int | None:
        return to_timestamp(self.header.get("unpublish_date"))

    @property
    def published(self) -> bool:
        if not bool(self.header.get("published", True)):
            return False
        now = int(time.time())
        publish_date = self.publish_date
        if publish_date is not None and publish_date > now:
            return False
        unpublish_date = self.unpublish_date
        if unpublish_date is not None and unpublish_date < now:
            return False
        return True

    @property
    def modular(self) -> bool:
        return self.folder.startswith(MODULAR_PREFIX)

    @property
    def taxonomy(self) -> dict[str, list[str]]:
        """Taxonomy name -> terms. Scalar terms are wrapped in a list."""
        raw = self.header.get("taxonomy")
        if not isinstance(raw, dict):
            return {}
        result: dict[str, list[str]] = {}
        for name, terms in raw.items():
            if terms is None:
                continue
            if isinstance(terms, (list, tuple)):
                result[name] = [str(t) for t in terms]
            else:
                result[name] = [str(terms)]
        return result

    @property
    def route_aliases(self) -> list[str]:
        aliases = get_nested(self.header, "routes.aliases")
        if not aliases:
            return []
        if isinstance(aliases, str):
            aliases = [aliases]
        return ["/" + str(a).strip("/") for a in aliases]

    @property
    def canonical_route(self) -> str | None:
        canonical = get_nested(self.header, "routes.canonical")
        return "/" + str(canonical).strip("/") if canonical else None

    @property
    def default_route(self) -> str | None:
        default = get_nested(self.header, "routes.default")
        return "/" + str(default).strip("/") if default else None

    @property
    def redirect(self) -> str | None:
        redirect = self.header.get("redirect")
        return str(redirect) if redirect else None

    @property
    def order_manual(self) -> list[str]:
        manual = get_nested(self.header, "content.order.custom")
        if manual is None:
            manual = self.header.get("order_manual")
        if not manual:
            return []
        if isinstance(manual, str):
            manual = [manual]
        return [str(m) for m in manual]

    @property
    def header_order_by(self) -> str | None:
        value = get_nested(self.header, "content.order.by") or self.header.get("order_by")
        return str(value) if value else None

    @property
    def header_order_dir(self) -> str | None:
        value = get_nested(self.header, "content.order.dir") or self.header.get("order_dir")
        return str(value).lower() if value else None

    def value(self, dotted: str, default: Any = None) -> Any:
        """Look up ``header.<field>`` style paths, or a plain attribute name."""
        if dotted.startswith("header."):
            return get_nested(self.header, dotted[len("header.") :], default)
        value = getattr(self, dotted, _MISSING)
        if value is _MISSING:
            return get_nested(self.header, dotted, default)
        return value

    @property
    def cache_key(self) -> str:
        """Stable key for caching rendered output of this document."""
        return hashlib.md5(self.path.encode("utf-8")).hexdigest()

    @property
    def checksum(self) -> str:
        """Changes whenever the document or, for modular pages, its children change."""
        return self.id

    def render_context(self) -> dict[str, Any]:
        """Fields a renderer needs to produce this document."""
        return {
            "cache_key": self.cache_key,
            "checksum": self.checksum,
            "template": self.template,
            "route": self.route,
            "title": self.title,
            "header": self.header,
            "content": self.content,
            "taxonomy": self.taxonomy,
        }

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        return cls(**data)
