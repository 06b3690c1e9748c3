import math

import pytest

from config import COUNTRY_PALETTE, RELAX_DELAY_MS
from renderer import GraphRenderer, ZoomTransform, render, tooltip_lines
from scene import Element, PointerEvent, create_surface


@pytest.fixture
def renderer(small_doc, timeline):
    return render(small_doc, timeline=timeline)


def _nodes(renderer):
    return {node.id: node for node in renderer.network.nodes}


# --- scene ---------------------------------------------------

def test_scene_structure(renderer):
    surface = renderer.surface
    assert surface.children == [renderer.zoom_group]
    assert renderer.main_group.get_attr('transform') == 'translate(0, 50)'
    layers = renderer.main_group.children
    assert [layer.get_attr('transform') for layer in layers] == ['translate(480,300)'] * 2
    assert len(surface.select_all('line')) == 2
    assert len(surface.select_all('circle')) == 3
    assert all(line.get_attr('stroke') == 'grey' for line in renderer.link_elements)


def test_radius_and_colour_by_degree_and_country(renderer):
    radii = {c.datum.id: c.get_attr('r') for c in renderer.circles}
    assert radii == pytest.approx({'A': 3, 'B': 12, 'C': 3})
    fills = {c.datum.id: c.get_attr('fill') for c in renderer.circles}
    assert fills == {'A': COUNTRY_PALETTE[0], 'B': COUNTRY_PALETTE[0], 'C': COUNTRY_PALETTE[1]}


def test_isolated_node_gets_minimum_radius(small_doc, timeline):
    small_doc['nodes'].append({'id': 'D', 'affiliation': 'Z'})
    renderer = render(small_doc, timeline=timeline)
    assert renderer.radius(_nodes(renderer)['D']) == pytest.approx(3)


def test_tick_syncs_positions(renderer, timeline):
    timeline.advance(timeline.frame_ms)
    a = _nodes(renderer)['A']
    assert renderer.node_elements[0].get_attr('transform') == f"translate({a.x:g},{a.y:g})"
    line = renderer.link_elements[0]
    assert line.get_attr('x1') == line.datum.source.x
    assert line.get_attr('y2') == line.datum.target.y


def test_invalid_viewbox_fails_setup(small_doc):
    with pytest.raises(ValueError):
        GraphRenderer(small_doc, Element('svg'))
    with pytest.raises(ValueError):
        GraphRenderer(small_doc, create_surface('0 0 960'))


# --- hover & click -------------------------------------------

def test_hover_dims_other_affiliations(renderer):
    nodes = _nodes(renderer)
    renderer.dispatch(nodes['A'], 'mouseover')
    opacity = {c.datum.id: c.styles['opacity'] for c in renderer.circles}
    assert opacity == {'A': 1.0, 'B': 1.0, 'C': 0.2}
    renderer.dispatch(nodes['A'], 'mouseout')
    assert all(c.styles['opacity'] == 1.0 for c in renderer.circles)


def test_tooltip_lines():
    from network_utils import AuthorNode
    node = AuthorNode(id='A', affiliation='X', country=None, publications=4,
                      titles=['One', 'Two'])
    assert tooltip_lines(node) == [
        'Author: A', 'Affiliation: X', 'Country: Unknown', 'Publications: 4',
        'Titles: One', 'Two',
    ]


def test_click_panel_lifecycle(renderer, timeline):
    a = _nodes(renderer)['A']
    panel = renderer.dispatch(a, 'click', page_x=100, page_y=200)
    assert panel.get_attr('x') == 105
    assert panel.get_attr('y') == 172
    assert panel.styles['opacity'] == 0
    assert 'Titles: First paper<br/>Second &lt;paper&gt;' in panel.html

    timeline.advance(250)
    assert panel.styles['opacity'] == pytest.approx(0.9)
    timeline.advance(3400 - 250)
    assert panel.connected
    timeline.advance(200)
    assert not panel.connected
    assert renderer.tooltips == []


def test_click_without_titles(renderer):
    panel = renderer.click(_nodes(renderer)['C'], 0, 0)
    assert panel.html.endswith('Titles: No titles available')


def test_panels_are_timed_independently(renderer, timeline):
    nodes = _nodes(renderer)
    first = renderer.click(nodes['A'], 0, 0)
    timeline.advance(1000)
    second = renderer.click(nodes['B'], 10, 10)
    assert renderer.tooltips == [first, second]
    timeline.advance(2600)
    assert not first.connected and second.connected
    timeline.advance(1000)
    assert not second.connected


# --- drag ----------------------------------------------------

def test_drag_pins_node(renderer, timeline):
    renderer.settle()
    a = _nodes(renderer)['A']
    renderer.dispatch(a, 'dragstart')
    assert renderer.simulation.alpha_target == pytest.approx(0.3)
    assert renderer.simulation.running
    assert (a.fx, a.fy) == (a.x, a.y)

    renderer.dispatch(a, 'drag', x=40.0, y=-25.0)
    timeline.advance(timeline.frame_ms)
    assert (a.x, a.y) == (40.0, -25.0)

    renderer.dispatch(a, 'dragend')
    assert a.fx is None and a.fy is None
    assert renderer.simulation.alpha_target == 0


def test_concurrent_drags_keep_solver_warm(renderer):
    nodes = _nodes(renderer)
    renderer.drag_start(nodes['A'])
    renderer.drag_start(nodes['B'])
    renderer.drag_end(nodes['A'])
    assert renderer.simulation.alpha_target == pytest.approx(0.3)
    assert nodes['B'].fx is not None
    renderer.drag_end(nodes['B'])
    assert renderer.simulation.alpha_target == 0


# --- sliders -------------------------------------------------

def test_slider_rebuilds_forces(renderer, timeline):
    renderer.settle()
    renderer.set_control('chargeStrength', -200)
    sim = renderer.simulation
    assert sim.alpha == 1.0
    assert sim.running
    a = _nodes(renderer)['A']
    assert sim.force('charge').strength(a) == -200
    # rebuilt charge has no distance cap
    assert sim.force('charge').distance_max == math.inf

    renderer.set_control('collisionRadius', 12)
    assert sim.force('collide').radius(a) == pytest.approx(3)
    renderer.set_control('linkStrength', 0.8)
    assert sim.force('link')._strengths == [0.8, 0.8]
    assert sim.force('link')._distances == [30, 30]
    assert list(sim._forces) == ['collide', 'x', 'y', 'charge', 'link']


def test_initial_forces_before_any_slider(renderer):
    sim = renderer.simulation
    assert sim.force('charge').distance_max == 300
    assert sim.force('link')._distances == [50, 50]
    assert sim.force('link')._strengths == [0.3, 0.3]


def test_slider_on_one_renderer_leaves_another_running(small_doc, timeline):
    first = render(small_doc, timeline=timeline)
    second = render(small_doc, timeline=timeline)
    second.set_control('chargeStrength', -150)
    timeline.advance(200)
    assert first.simulation.alpha < 1.0
    assert first.simulation.running
    assert second.simulation.running


def test_only_latest_relax_timer_fires(renderer, timeline):
    sim = renderer.simulation
    renderer.set_control('chargeStrength', -150)
    first = renderer.relax_timer
    timeline.advance(1000)
    renderer.set_control('chargeStrength', -120)
    second = renderer.relax_timer
    assert not first.pending and second.pending

    sim.alpha_target = 0.5
    timeline.advance(RELAX_DELAY_MS - 1)
    assert sim.alpha_target == 0.5
    timeline.advance(1)
    assert sim.alpha_target == 0
    assert renderer.relax_timer is None


def test_unknown_control(renderer):
    with pytest.raises(KeyError):
        renderer.set_control('gravity', 1)


# --- zoom ----------------------------------------------------

def test_zoom_is_clamped(renderer):
    assert renderer.zoom(10).k == 5
    assert renderer.zoom(0.1).k == 0.5
    renderer.zoom(1)
    assert renderer.zoom_group.get_attr('transform') == 'translate(0,0) scale(1)'


def test_zoom_by_keeps_point_fixed(renderer):
    t = renderer.zoom_by(2, (100, 100))
    assert t == ZoomTransform(2, -100, -100)
    t = renderer.pan(10, 5)
    assert t == ZoomTransform(2, -90, -95)


def test_surface_zoom_event(renderer):
    renderer.surface.dispatch(PointerEvent('zoom', x=1, y=2, k=3))
    assert renderer.zoom_transform == ZoomTransform(3, 1, 2)


def test_surface_wheel_and_pan_events(renderer):
    renderer.surface.dispatch(PointerEvent('wheel', x=100, y=100, k=2))
    assert renderer.zoom_transform == ZoomTransform(2, -100, -100)
    renderer.surface.dispatch(PointerEvent('wheel', x=0, y=0, k=10))
    assert renderer.zoom_transform.k == 5
    renderer.surface.dispatch(PointerEvent('pan', x=10, y=5))
    t = renderer.zoom_transform
    assert renderer.zoom_group.get_attr('transform') == str(t)


# --- headless ------------------------------------------------

def test_settle_and_positions(renderer):
    ticks = renderer.settle()
    assert 295 <= ticks <= 302
    sim = renderer.simulation
    assert sim.alpha < sim.alpha_min
    assert not sim.running
    positions = renderer.positions()
    assert list(positions) == ['A', 'B', 'C']
    assert all(math.isfinite(p['x']) and math.isfinite(p['y']) for p in positions.values())

    a = _nodes(renderer)['A']
    assert renderer.node_elements[0].get_attr('transform') == f"translate({a.x:g},{a.y:g})"


def test_settle_respects_tick_limit(renderer):
    assert renderer.settle(max_ticks=10) == 10
    assert renderer.simulation.alpha > renderer.simulation.alpha_min
