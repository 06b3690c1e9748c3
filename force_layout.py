"""
Force-Directed Layout Solver
============================
Velocity-Verlet style force simulation for the author network.

Each tick:
  1. alpha moves toward alpha_target by alpha_decay
  2. every registered force adds to node velocities (registration order)
  3. free axes integrate: v *= velocity_decay, x += v
     pinned axes (fx / fy set) snap to the pin with zero velocity

Forces:
  ForceX / ForceY  : weak pull toward an axis target
  ForceManyBody    : pairwise repulsion with optional distance cap (numpy)
  ForceCollide     : radius-aware overlap removal (scipy cKDTree candidates)
  ForceLink        : spring toward a target link distance

Nodes are any objects with x, y, vx, vy, fx, fy, index attributes
(see network_utils.AuthorNode).
"""

import math
import numpy as np
from operator import attrgetter
from scipy.spatial import cKDTree

from config import ALPHA_MIN, ALPHA_DECAY, VELOCITY_DECAY, LAYOUT_SEED

INITIAL_RADIUS = 10
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))


def _accessor(value):
    """Wrap a constant so every force parameter can be read per node / link."""
    if callable(value):
        return value
    return lambda _: value


def jiggle(random):
    """Tiny random offset used to separate coincident points."""
    return (random.random() - 0.5) * 1e-6


# =============================================================
# Forces
# =============================================================

class Force:
    """Base class: `initialize` binds the node list, `__call__(alpha)` adds velocity."""

    def initialize(self, nodes, random):
        self.nodes = nodes
        self.random = random

    def __call__(self, alpha):
        raise NotImplementedError


class ForceX(Force):

    def __init__(self, x=0, strength=0.1):
        self.x = _accessor(x)
        self.strength = _accessor(strength)

    def initialize(self, nodes, random):
        super().initialize(nodes, random)
        self._targets = [float(self.x(n)) for n in nodes]
        self._strengths = [0.0 if math.isnan(t) else float(self.strength(n))
                           for n, t in zip(nodes, self._targets)]

    def __call__(self, alpha):
        for node, target, strength in zip(self.nodes, self._targets, self._strengths):
            node.vx += (target - node.x) * strength * alpha


class ForceY(Force):

    def __init__(self, y=0, strength=0.1):
        self.y = _accessor(y)
        self.strength = _accessor(strength)

    def initialize(self, nodes, random):
        super().initialize(nodes, random)
        self._targets = [float(self.y(n)) for n in nodes]
        self._strengths = [0.0 if math.isnan(t) else float(self.strength(n))
                           for n, t in zip(nodes, self._targets)]

    def __call__(self, alpha):
        for node, target, strength in zip(self.nodes, self._targets, self._strengths):
            node.vy += (target - node.y) * strength * alpha


class ForceManyBody(Force):
    """Exact pairwise n-body force. Negative strength repels.

    Pairs farther apart than `distance_max` do not interact; distances below
    `distance_min` are softened to avoid blow-ups.
    """

    def __init__(self, strength=-30, distance_min=1, distance_max=math.inf):
        self.strength = _accessor(strength)
        self.distance_min = distance_min
        self.distance_max = distance_max

    def initialize(self, nodes, random):
        super().initialize(nodes, random)
        self._strengths = np.array([float(self.strength(n)) for n in nodes])

    def __call__(self, alpha):
        n = len(self.nodes)
        if n < 2:
            return
        pos = np.array([(node.x, node.y) for node in self.nodes], dtype=float)
        # dx[i, j] = x_j - x_i
        dx = pos[None, :, 0] - pos[:, None, 0]
        dy = pos[None, :, 1] - pos[:, None, 1]
        others = ~np.eye(n, dtype=bool)

        l = dx * dx + dy * dy
        near = others & (l < self.distance_max ** 2)

        for d in (dx, dy):
            zero = near & (d == 0)
            if zero.any():
                d[zero] = (self.random.random(int(zero.sum())) - 0.5) * 1e-6
        l = dx * dx + dy * dy

        dmin2 = self.distance_min ** 2
        l = np.where(l < dmin2, np.sqrt(dmin2 * l), l)
        w = np.where(near, self._strengths[None, :] * alpha / np.where(near, l, 1.0), 0.0)

        dvx = (dx * w).sum(axis=1)
        dvy = (dy * w).sum(axis=1)
        for node, ux, uy in zip(self.nodes, dvx, dvy):
            node.vx += float(ux)
            node.vy += float(uy)


class ForceCollide(Force):
    """Treats nodes as circles and pushes overlapping pairs apart.

    Overlap is measured on predicted positions (x + vx). The correction is
    shared in proportion to the other node's squared radius.
    """

    def __init__(self, radius=1, strength=1, iterations=1):
        self.radius = _accessor(radius)
        self.strength = strength
        self.iterations = iterations

    def initialize(self, nodes, random):
        super().initialize(nodes, random)
        self._radii = np.array([float(self.radius(n)) for n in nodes])

    def _neighbours(self, predicted):
        reach = 2 * float(self._radii.max())
        pairs = cKDTree(predicted).query_pairs(reach, output_type='ndarray')
        found = [[] for _ in self.nodes]
        if len(pairs) == 0:
            return found
        # query_pairs yields i < j; visit in (i, j) order for repeatable results
        for i, j in pairs[np.lexsort((pairs[:, 1], pairs[:, 0]))]:
            found[int(i)].append(int(j))
        return found

    def __call__(self, alpha):
        nodes = self.nodes
        if len(nodes) < 2 or self._radii.max() <= 0:
            return
        radii = self._radii
        for _ in range(self.iterations):
            predicted = np.array([(n.x + n.vx, n.y + n.vy) for n in nodes], dtype=float)
            neighbours = self._neighbours(predicted)
            for i, node in enumerate(nodes):
                ri = radii[i]
                ri2 = ri * ri
                xi = node.x + node.vx
                yi = node.y + node.vy
                for j in neighbours[i]:
                    other = nodes[j]
                    rj = radii[j]
                    r = ri + rj
                    x = xi - other.x - other.vx
                    y = yi - other.y - other.vy
                    l = x * x + y * y
                    if l >= r * r:
                        continue
                    if x == 0:
                        x = jiggle(self.random)
                        l += x * x
                    if y == 0:
                        y = jiggle(self.random)
                        l += y * y
                    l = math.sqrt(l)
                    l = (r - l) / l * self.strength
                    x *= l
                    y *= l
                    rj2 = rj * rj
                    share = rj2 / (ri2 + rj2)
                    node.vx += x * share
                    node.vy += y * share
                    other.vx -= x * (1 - share)
                    other.vy -= y * (1 - share)


class ForceLink(Force):
    """Spring force along links.

    Link endpoints given as ids are resolved to node objects when the force is
    bound to the simulation. Default strength is 1 / min(degree(source),
    degree(target)) so hubs are not pulled around by their many links.
    """

    def __init__(self, links, id=attrgetter('id'), distance=30, strength=None, iterations=1):
        self.links = list(links)
        self.id = id
        self.distance = _accessor(distance)
        self.strength = strength
        self.iterations = iterations

    def _find(self, node_by_id, node_id):
        try:
            return node_by_id[node_id]
        except KeyError:
            raise KeyError(f"node not found: {node_id}") from None

    def initialize(self, nodes, random):
        super().initialize(nodes, random)
        node_by_id = {self.id(node): node for node in nodes}
        count = [0] * len(nodes)
        for i, link in enumerate(self.links):
            link.index = i
            if not hasattr(link.source, 'vx'):
                link.source = self._find(node_by_id, link.source)
            if not hasattr(link.target, 'vx'):
                link.target = self._find(node_by_id, link.target)
            count[link.source.index] += 1
            count[link.target.index] += 1

        self._bias = []
        for link in self.links:
            s, t = count[link.source.index], count[link.target.index]
            self._bias.append(s / (s + t))

        if self.strength is None:
            self._strengths = [1 / min(count[l.source.index], count[l.target.index]) for l in self.links]
        else:
            strength = _accessor(self.strength)
            self._strengths = [float(strength(l)) for l in self.links]
        self._distances = [float(self.distance(l)) for l in self.links]

    def __call__(self, alpha):
        for _ in range(self.iterations):
            for link, bias, strength, distance in zip(self.links, self._bias, self._strengths, self._distances):
                source, target = link.source, link.target
                x = (target.x + target.vx - source.x - source.vx) or jiggle(self.random)
                y = (target.y + target.vy - source.y - source.vy) or jiggle(self.random)
                l = math.sqrt(x * x + y * y)
                l = (l - distance) / l * alpha * strength
                x *= l
                y *= l
                target.vx -= x * bias
                target.vy -= y * bias
                source.vx += x * (1 - bias)
                source.vy += y * (1 - bias)


# =============================================================
# Simulation
# =============================================================

class ForceSimulation:
    """Runs registered forces over `nodes` with a decaying energy (alpha).

    With a `timeline`, the simulation steps once per animation frame from
    construction until alpha drops below `alpha_min`; `restart()` resumes it.
    Without one, call `run()` to lay out synchronously.
    """

    def __init__(self, nodes=(), timeline=None, seed=LAYOUT_SEED):
        self.nodes = list(nodes)
        self.alpha = 1.0
        self.alpha_min = ALPHA_MIN
        self.alpha_decay = ALPHA_DECAY
        self.alpha_target = 0.0
        self.velocity_decay = VELOCITY_DECAY
        self.random = np.random.default_rng(seed)
        self._forces = {}
        self._listeners = {'tick': [], 'end': []}
        self._initialize_nodes()
        self._stepper = timeline.ticker(self.step) if timeline is not None else None
        if self._stepper is not None:
            self._stepper.restart()

    def _initialize_nodes(self):
        for i, node in enumerate(self.nodes):
            node.index = i
            if node.fx is not None:
                node.x = node.fx
            if node.fy is not None:
                node.y = node.fy
            if math.isnan(node.x) or math.isnan(node.y):
                radius = INITIAL_RADIUS * math.sqrt(0.5 + i)
                angle = i * INITIAL_ANGLE
                node.x = radius * math.cos(angle)
                node.y = radius * math.sin(angle)
            if math.isnan(node.vx) or math.isnan(node.vy):
                node.vx = node.vy = 0.0

    # --- forces -------------------------------------------------

    def force(self, name):
        return self._forces.get(name)

    def set_force(self, name, force):
        """Register (or replace, keeping its position) the force called `name`."""
        if force is None:
            self._forces.pop(name, None)
        else:
            force.initialize(self.nodes, self.random)
            self._forces[name] = force
        return self

    # --- events -------------------------------------------------

    def on(self, event, callback):
        self._listeners[event].append(callback)
        return self

    def _dispatch(self, event):
        for callback in list(self._listeners[event]):
            callback()

    # --- stepping -----------------------------------------------

    @property
    def running(self):
        return self._stepper is not None and self._stepper.active

    def restart(self):
        if self._stepper is not None:
            self._stepper.restart()
        return self

    def stop(self):
        if self._stepper is not None:
            self._stepper.stop()
        return self

    def tick(self, iterations=1):
        """Advance the layout without dispatching events."""
        for _ in range(iterations):
            self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay
            for force in self._forces.values():
                force(self.alpha)
            for node in self.nodes:
                if node.fx is None:
                    node.vx *= self.velocity_decay
                    node.x += node.vx
                else:
                    node.x = node.fx
                    node.vx = 0.0
                if node.fy is None:
                    node.vy *= self.velocity_decay
                    node.y += node.vy
                else:
                    node.y = node.fy
                    node.vy = 0.0
        return self

    def step(self):
        """One animation frame: tick, notify, and stop once converged."""
        self.tick()
        self._dispatch('tick')
        if self.alpha < self.alpha_min:
            self.stop()
            self._dispatch('end')

    def run(self, max_ticks=None):
        """Tick synchronously until converged (or `max_ticks`). Returns ticks run."""
        self.stop()
        ticks = 0
        while self.alpha >= self.alpha_min and (max_ticks is None or ticks < max_ticks):
            self.tick()
            self._dispatch('tick')
            ticks += 1
        if self.alpha < self.alpha_min:
            self._dispatch('end')
        return ticks
