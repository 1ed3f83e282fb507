"""Página HTML mínima de estado."""

from __future__ import annotations

from dataclasses import dataclass, field
from html import escape
from typing import Dict, List, Mapping, Optional

HOME_TITLE = "AFM"
HOME_STYLESHEET = "polaroid.css"
WELCOME_TEXT = "Welcome to the HomePage!"


@dataclass
class Meta:
    name: str
    content: str


@dataclass
class Page:
    """Página con título, hojas de estilo, scripts y metadatos.

    Hojas de estilo y scripts no se repiten; ``add_meta`` reemplaza el
    contenido si el nombre ya existe.
    """
    title: str = ""
    stylesheets: List[str] = field(default_factory=list)
    scripts: List[str] = field(default_factory=list)
    meta: List[Meta] = field(default_factory=list)
    body: List[str] = field(default_factory=list)

    def set_title(self, title: str) -> None:
        self.title = title

    def add_stylesheet(self, href: str) -> None:
        if href not in self.stylesheets:
            self.stylesheets.append(href)

    def add_script(self, src: str) -> None:
        if src not in self.scripts:
            self.scripts.append(src)

    def add_meta(self, name: str, content: str) -> None:
        for entry in self.meta:
            if entry.name == name:
                entry.content = content
                return
        self.meta.append(Meta(name=name, content=content))

    def add_body(self, html_fragment: str) -> None:
        """Añade HTML ya escapado al cuerpo."""
        self.body.append(html_fragment)

    def render(self) -> str:
        out = ["<html><head>"]
        if self.title:
            out.append(f"<title>{escape(self.title)}</title>")
        for href in self.stylesheets:
            out.append(f'<link type="text/css" rel="stylesheet" href="{escape(href)}"/>')
        for src in self.scripts:
            out.append(f'<script type="application/javascript" src="{escape(src)}"></script>')
        for entry in self.meta:
            out.append(f'<meta name="{escape(entry.name)}" content="{escape(entry.content)}"/>')
        out.append("</head>")
        out.append(f"<body>{''.join(self.body)}</body></html>")
        return "\n".join(out)


def render_home_page(stats: Optional[Mapping[str, object]] = None, client_id: str = "") -> str:
    page = Page(title=HOME_TITLE)
    page.add_stylesheet(HOME_STYLESHEET)
    if client_id:
        page.add_meta("client-id", client_id)

    page.add_body(f"<p>{escape(WELCOME_TEXT)}</p>")
    if stats:
        rows: Dict[str, object] = {k: v for k, v in stats.items() if not isinstance(v, dict)}
        items = "".join(
            f"<li>{escape(str(key))}: {escape(str(value))}</li>" for key, value in rows.items()
        )
        page.add_body(f'<ul class="stats">{items}</ul>')
    return page.render()
