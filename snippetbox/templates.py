"""Precompiled Jinja2 page templates and the data envelope handed to them."""

import secrets
from dataclasses import dataclass, field, fields
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

from fastapi.responses import HTMLResponse
from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template, select_autoescape

from .errors import server_error
from .sessions import Session
from .logger import logger
from .utils import human_date, utcnow

CSRF_SESSION_KEY = "csrf_token"
FLASH_SESSION_KEY = "flash"


def csrf_token(session: Session) -> str:
    """Return the session's anti-forgery token, creating it on first use."""
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session.put(CSRF_SESSION_KEY, token)
    return token


@dataclass
class TemplateData:
    """Everything a page template may read."""
    current_year: int
    flash: str = ""
    is_authenticated: bool = False
    csrf_token: str = ""
    form: Any = None
    snippet: Any = None
    snippets: list = field(default_factory=list)

    def as_context(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def new_template_cache(template_dir: str | Path) -> Mapping[str, Template]:
    """Compile every template under ``template_dir`` and cache the pages by file name.

    Layouts and partials are compiled too, so a syntax error anywhere fails
    here rather than on first request.
    """
    root = Path(template_dir)
    pages_dir = root / "pages"
    if not pages_dir.is_dir():
        raise FileNotFoundError(f"template directory {pages_dir} does not exist")

    env = Environment(
        loader=FileSystemLoader(str(root)),
        autoescape=select_autoescape(["html"]),
        undefined=StrictUndefined,
        auto_reload=False,
    )
    env.filters["human_date"] = human_date

    for name in env.list_templates(extensions=["html"]):
        env.get_template(name)

    cache = {
        page.name: env.get_template(f"pages/{page.name}")
        for page in sorted(pages_dir.glob("*.html"))
    }
    if not cache:
        raise FileNotFoundError(f"no page templates found in {pages_dir}")
    logger.info(f"Template cache built: {len(cache)} pages from {root}")
    return MappingProxyType(cache)


class TemplateRenderer:
    """Renders cached pages; read-only after construction."""

    def __init__(self, cache: Mapping[str, Template]):
        self._cache = cache

    @classmethod
    def from_directory(cls, template_dir: str | Path) -> "TemplateRenderer":
        return cls(new_template_cache(template_dir))

    @property
    def pages(self) -> list[str]:
        return sorted(self._cache)

    def new_template_data(self, session: Session, user_id: Optional[int]) -> TemplateData:
        return TemplateData(
            current_year=utcnow().year,
            flash=session.pop_string(FLASH_SESSION_KEY),
            is_authenticated=user_id is not None,
            csrf_token=csrf_token(session),
        )

    def render(self, status_code: int, page: str, data: TemplateData) -> HTMLResponse:
        """Render ``page`` fully before answering with ``status_code``.

        A missing page or a failing render is logged and answered with a
        generic 500 instead.
        """
        template = self._cache.get(page)
        if template is None:
            return server_error(LookupError(f"the template {page} does not exist"))
        try:
            body = template.render(**data.as_context())
        except Exception as e:
            return server_error(e)
        return HTMLResponse(body, status_code=status_code)
