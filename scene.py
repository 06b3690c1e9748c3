"""
Scene Graph
===========
Minimal retained-mode SVG tree the renderer draws into: elements with
attributes, styles, a bound datum, child elements and event handlers.

`to_svg()` writes the tree as standalone SVG markup.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple
from xml.sax.saxutils import escape, quoteattr

from timeline import Transition

SVG_NS = 'http://www.w3.org/2000/svg'
XHTML_NS = 'http://www.w3.org/1999/xhtml'


@dataclass
class PointerEvent:
    """What a handler receives along with the element's datum."""
    type: str
    page_x: float = 0.0
    page_y: float = 0.0
    x: float = 0.0
    y: float = 0.0
    k: float = 1.0


def parse_viewbox(value: Optional[str]) -> Tuple[float, float, float, float]:
    """Parse "minX minY width height". Raises ValueError when missing or malformed."""
    if value is None:
        raise ValueError("drawing surface has no viewBox")
    parts = value.replace(',', ' ').split()
    if len(parts) != 4:
        raise ValueError(f"viewBox must have 4 numbers, got {value!r}")
    try:
        min_x, min_y, width, height = (float(p) for p in parts)
    except ValueError:
        raise ValueError(f"viewBox must have 4 numbers, got {value!r}") from None
    return min_x, min_y, width, height


def _fmt(value):
    if isinstance(value, float):
        return f"{value:.4g}" if abs(value) < 1e-3 else f"{round(value, 3):g}"
    return str(value)


class Element:

    def __init__(self, tag: str, parent: Optional['Element'] = None, datum: Any = None):
        self.tag = tag
        self.parent = parent
        self.datum = datum
        self.attrs: Dict[str, Any] = {}
        self.styles: Dict[str, Any] = {}
        self.children: List['Element'] = []
        self.handlers: Dict[str, Callable] = {}
        self.html: Optional[str] = None
        self.transition_state: Optional[Transition] = None

    def __repr__(self):
        return f"<{self.tag} {self.attrs}>"

    # --- building -----------------------------------------------

    def append(self, tag: str, datum: Any = None) -> 'Element':
        child = Element(tag, parent=self, datum=datum)
        self.children.append(child)
        return child

    def attr(self, name: str, value: Any) -> 'Element':
        self.attrs[name] = value
        return self

    def get_attr(self, name: str, default: Any = None) -> Any:
        return self.attrs.get(name, default)

    def style(self, name: str, value: Any) -> 'Element':
        self.styles[name] = value
        return self

    def remove(self) -> None:
        if self.transition_state is not None:
            self.transition_state.interrupt()
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None

    @property
    def connected(self) -> bool:
        """True while attached to a root `svg` element."""
        node = self
        while node.parent is not None:
            node = node.parent
        return node.tag == 'svg'

    # --- events -------------------------------------------------

    def on(self, event: str, handler: Optional[Callable]) -> 'Element':
        if handler is None:
            self.handlers.pop(event, None)
        else:
            self.handlers[event] = handler
        return self

    def dispatch(self, event: PointerEvent) -> Any:
        handler = self.handlers.get(event.type)
        if handler is not None:
            return handler(event, self.datum)
        return None

    # --- queries ------------------------------------------------

    def iter(self) -> Iterator['Element']:
        for child in self.children:
            yield child
            yield from child.iter()

    def select_all(self, tag: str) -> List['Element']:
        return [el for el in self.iter() if el.tag == tag]

    def transition(self, timeline, duration: float, delay: float = 0) -> Transition:
        return Transition(self, timeline, duration, delay)

    # --- output -------------------------------------------------

    def to_svg(self, indent: int = 0) -> str:
        pad = '  ' * indent
        attrs = dict(self.attrs)
        if self.tag == 'svg' and self.parent is None:
            attrs.setdefault('xmlns', SVG_NS)
        if self.styles:
            attrs['style'] = ';'.join(f"{k}:{_fmt(v)}" for k, v in self.styles.items())
        head = self.tag + ''.join(f" {k}={quoteattr(_fmt(v))}" for k, v in attrs.items())
        if self.html is not None:
            body = f'<div xmlns="{XHTML_NS}">{self.html}</div>'
            return f"{pad}<{head}>{body}</{self.tag}>"
        if not self.children:
            return f"{pad}<{head}/>"
        inner = '\n'.join(child.to_svg(indent + 1) for child in self.children)
        return f"{pad}<{head}>\n{inner}\n{pad}</{self.tag}>"


def create_surface(viewbox: str) -> Element:
    """A fresh root `svg` element declaring `viewbox`."""
    return Element('svg').attr('viewBox', viewbox)


def text_block(lines: List[str]) -> str:
    """Escape each line and join with <br/> for an HTML panel."""
    return '<br/>'.join(escape(line) for line in lines)
