"""
Graph Renderer
==============
Draws the author network into a scene graph and keeps it in sync with the
force simulation.

  - nodes: circle radius from a sqrt scale over degree, fill by top-10 country
  - hover: nodes sharing the affiliation stay opaque, the rest dim
  - click: timed tooltip panel (fade in, hold, fade out, removed)
  - drag: pins the node while held and keeps the solver warm
  - sliders: rebuild charge / collision / link forces and restart;
    motion relaxes after an idle delay (one pending relax timer at most)
  - zoom/pan: camera transform on the outer group, bounded scale

Interaction runs on a single `Timeline` and never blocks; `settle()` ticks the
solver synchronously for headless export.
"""

from dataclasses import dataclass

from config import (
    VIEWBOX, INNER_OFFSET, LINK_COLOR, COLLIDE_MULTIPLIER, CENTER_STRENGTH, CHARGE_STRENGTH,
    CHARGE_DISTANCE_MAX, LINK_DISTANCE, LINK_STRENGTH, REBUILD_CHARGE_DISTANCE_MAX,
    REBUILD_LINK_DISTANCE, HOVER_OPACITY, DIMMED_OPACITY,
    DRAG_ALPHA_TARGET, RELAX_DELAY_MS, TOOLTIP_OFFSET, TOOLTIP_SIZE, TOOLTIP_OPACITY,
    TOOLTIP_FADE_IN_MS, TOOLTIP_HOLD_MS, TOOLTIP_FADE_OUT_MS, NO_TITLES_TEXT,
    ZOOM_EXTENT, SLIDERS, COLLISION_SLIDER_DIVISOR, LAYOUT_SEED,
    slider_defaults,
)
from force_layout import ForceSimulation, ForceCollide, ForceX, ForceY, ForceManyBody, ForceLink
from network_utils import (
    AuthorNetwork, parse_network, compute_degrees, radius_scale, country_palette,
)
from scene import PointerEvent, create_surface, parse_viewbox, text_block
from timeline import Timeline


@dataclass
class ZoomTransform:
    k: float = 1.0
    x: float = 0.0
    y: float = 0.0

    def __str__(self):
        return f"translate({self.x:g},{self.y:g}) scale({self.k:g})"


def tooltip_lines(node):
    """Text rows of the click panel for `node`."""
    lines = [
        f"Author: {node.id}",
        f"Affiliation: {node.affiliation}",
        f"Country: {node.country if node.country else 'Unknown'}",
        f"Publications: {node.publications}",
    ]
    if node.titles:
        lines.append(f"Titles: {node.titles[0]}")
        lines.extend(node.titles[1:])
    else:
        lines.append(f"Titles: {NO_TITLES_TEXT}")
    return lines


class GraphRenderer:
    """Renders `data` (raw document or AuthorNetwork) into `surface`.

    `controls` maps slider ids to their current values; it is only read when
    a slider input arrives (`set_control` / `update_forces`).
    """

    def __init__(self, data, surface=None, controls=None, timeline=None, seed=LAYOUT_SEED):
        self.surface = surface if surface is not None else create_surface(VIEWBOX)
        _, _, self.width, self.height = parse_viewbox(self.surface.get_attr('viewBox'))
        self.network = data if isinstance(data, AuthorNetwork) else parse_network(data)
        self.controls = dict(slider_defaults() if controls is None else controls)
        self.timeline = timeline if timeline is not None else Timeline()
        self.seed = seed

        self.relax_timer = None
        self.zoom_transform = ZoomTransform()
        self._active_drags = 0

        self._compute_scales()
        self._build_scene()
        self._attach_handlers()
        self._start_simulation()

    # =============================================================
    # Setup
    # =============================================================

    def _compute_scales(self):
        self.degrees = compute_degrees(self.network.links)
        self.radius_scale = radius_scale(self.degrees)
        self.color_of = country_palette(self.network.nodes)

    def radius(self, node):
        return self.radius_scale(self.degrees.get(node.id, 0))

    def _build_scene(self):
        center = f"translate({self.width / 2:g},{self.height / 2:g})"
        self.zoom_group = self.surface.append('g')
        self.main_group = self.zoom_group.append('g').attr('transform', 'translate(%g, %g)' % INNER_OFFSET)

        link_layer = self.main_group.append('g').attr('transform', center)
        self.link_elements = [link_layer.append('line', datum=link).attr('stroke', LINK_COLOR)
                              for link in self.network.links]

        node_layer = self.main_group.append('g').attr('transform', center)
        self.node_elements = []
        self.circles = []
        for node in self.network.nodes:
            group = node_layer.append('g', datum=node)
            circle = group.append('circle', datum=node)
            circle.attr('r', self.radius(node)).attr('fill', self.color_of(node.country))
            self.node_elements.append(group)
            self.circles.append(circle)

    def _attach_handlers(self):
        for group in self.node_elements:
            group.on('mouseover', lambda event, d: self.hover(d))
            group.on('mouseout', lambda event, d: self.unhover())
            group.on('click', lambda event, d: self.click(d, event.page_x, event.page_y))
            group.on('dragstart', lambda event, d: self.drag_start(d))
            group.on('drag', lambda event, d: self.drag(d, event.x, event.y))
            group.on('dragend', lambda event, d: self.drag_end(d))
        self.surface.on('zoom', lambda event, d: self.zoom(event.k, event.x, event.y))
        # wheel: k is the scale factor, (x, y) the anchor; pan: (x, y) is the offset
        self.surface.on('wheel', lambda event, d: self.zoom_by(event.k, (event.x, event.y)))
        self.surface.on('pan', lambda event, d: self.pan(event.x, event.y))

    def _start_simulation(self):
        sim = ForceSimulation(self.network.nodes, timeline=self.timeline, seed=self.seed)
        sim.set_force('collide', ForceCollide(lambda n: self.radius(n) * COLLIDE_MULTIPLIER))
        sim.set_force('x', ForceX(strength=CENTER_STRENGTH))
        sim.set_force('y', ForceY(strength=CENTER_STRENGTH))
        sim.set_force('charge', ForceManyBody(strength=CHARGE_STRENGTH,
                                              distance_max=CHARGE_DISTANCE_MAX))
        sim.set_force('link', ForceLink(self.network.links, distance=LINK_DISTANCE,
                                        strength=LINK_STRENGTH))
        sim.on('tick', self.sync)
        self.simulation = sim

    def sync(self):
        """Copy solver positions onto every node group and link line."""
        for group in self.node_elements:
            node = group.datum
            group.attr('transform', f"translate({node.x:g},{node.y:g})")
        for line in self.link_elements:
            link = line.datum
            line.attr('x1', link.source.x).attr('x2', link.target.x)
            line.attr('y1', link.source.y).attr('y2', link.target.y)

    # =============================================================
    # Hover & click
    # =============================================================

    def hover(self, node):
        for circle in self.circles:
            same = circle.datum.affiliation == node.affiliation
            circle.style('opacity', HOVER_OPACITY if same else DIMMED_OPACITY)

    def unhover(self):
        for circle in self.circles:
            circle.style('opacity', HOVER_OPACITY)

    def click(self, node, page_x, page_y):
        """Spawn a tooltip panel at the pointer; it removes itself after fading out."""
        dx, dy = TOOLTIP_OFFSET
        panel = self.surface.append('foreignObject', datum=node)
        panel.attr('class', 'tooltip').attr('x', page_x + dx).attr('y', page_y + dy)
        panel.attr('width', TOOLTIP_SIZE[0]).attr('height', TOOLTIP_SIZE[1])
        panel.style('opacity', 0)
        panel.html = text_block(tooltip_lines(node))
        panel.transition(self.timeline, TOOLTIP_FADE_IN_MS).style('opacity', TOOLTIP_OPACITY)
        self.timeline.call_later(TOOLTIP_HOLD_MS, self._fade_out, panel)
        return panel

    def _fade_out(self, panel):
        panel.transition(self.timeline, TOOLTIP_FADE_OUT_MS).style('opacity', 0).remove()

    @property
    def tooltips(self):
        return self.surface.select_all('foreignObject')

    # =============================================================
    # Drag
    # =============================================================

    def drag_start(self, node):
        if self._active_drags == 0:
            self.simulation.alpha_target = DRAG_ALPHA_TARGET
            self.simulation.restart()
        self._active_drags += 1
        node.fx = node.x
        node.fy = node.y

    def drag(self, node, x, y):
        node.fx = x
        node.fy = y

    def drag_end(self, node):
        self._active_drags = max(0, self._active_drags - 1)
        if self._active_drags == 0:
            self.simulation.alpha_target = 0
        node.fx = None
        node.fy = None

    # =============================================================
    # Sliders
    # =============================================================

    def set_control(self, name, value):
        """Slider input event: store the new value and reconfigure the forces."""
        if name not in SLIDERS:
            raise KeyError(f"unknown control: {name}")
        self.controls[name] = float(value)
        self.update_forces()

    def update_forces(self):
        charge = float(self.controls['chargeStrength'])
        collision = float(self.controls['collisionRadius'])
        link_strength = float(self.controls['linkStrength'])

        sim = self.simulation
        sim.set_force('charge', ForceManyBody(strength=charge, distance_max=REBUILD_CHARGE_DISTANCE_MAX))
        sim.set_force('collide', ForceCollide(
            lambda n: self.radius(n) * collision / COLLISION_SLIDER_DIVISOR))
        sim.set_force('link', ForceLink(self.network.links, distance=REBUILD_LINK_DISTANCE,
                                        strength=link_strength))
        sim.alpha = 1.0
        sim.restart()

        if self.relax_timer is not None:
            self.relax_timer.cancel()
        self.relax_timer = self.timeline.call_later(RELAX_DELAY_MS, self._relax)

    def _relax(self):
        self.relax_timer = None
        self.simulation.alpha_target = 0

    # =============================================================
    # Zoom / pan
    # =============================================================

    def zoom(self, k, x=None, y=None):
        """Apply a camera transform; scale is clamped to the zoom extent."""
        lo, hi = ZOOM_EXTENT
        t = self.zoom_transform
        self.zoom_transform = ZoomTransform(
            k=min(hi, max(lo, k)),
            x=t.x if x is None else x,
            y=t.y if y is None else y,
        )
        self.zoom_group.attr('transform', str(self.zoom_transform))
        return self.zoom_transform

    def zoom_by(self, factor, point=(0, 0)):
        """Scale around `point` (surface coordinates), keeping it fixed on screen."""
        t = self.zoom_transform
        lo, hi = ZOOM_EXTENT
        k = min(hi, max(lo, t.k * factor))
        px, py = point
        return self.zoom(k, px - (px - t.x) * k / t.k, py - (py - t.y) * k / t.k)

    def pan(self, dx, dy):
        t = self.zoom_transform
        return self.zoom(t.k, t.x + dx, t.y + dy)

    # =============================================================
    # Pointer input & headless helpers
    # =============================================================

    def dispatch(self, node, event_type, **kwargs):
        """Deliver a pointer event to the element bound to `node`."""
        group = self.node_elements[node.index]
        return group.dispatch(PointerEvent(type=event_type, **kwargs))

    def settle(self, max_ticks=None):
        """Tick the solver synchronously until it converges (or `max_ticks`).

        Listeners still see every tick, so the scene ends in sync. Returns ticks run.
        """
        return self.simulation.run(max_ticks)

    def positions(self):
        return {node.id: {'x': round(node.x, 3), 'y': round(node.y, 3)} for node in self.network.nodes}


def render(data, viewbox=VIEWBOX, controls=None, timeline=None):
    """Convenience: new surface + renderer."""
    return GraphRenderer(data, create_surface(viewbox), controls=controls, timeline=timeline)
