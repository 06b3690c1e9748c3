#import modules
import json
import math
import pandas as pd
import networkx as nx
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Hashable, Iterable, List, Optional, Sequence, Tuple, Union

from config import COUNTRY_PALETTE, FALLBACK_COLOR, RADIUS_RANGE, TOP_N_COUNTRIES

## 0. Data model

@dataclass(eq=False)
class AuthorNode:
    r"""One author. `x`/`y`/`vx`/`vy` are owned by the force solver, `fx`/`fy` pin
    the node while it is dragged (``None`` means free).
    """
    id: str
    affiliation: Optional[str] = None
    country: Optional[str] = None
    publications: int = 0
    titles: Optional[List[str]] = None
    x: float = math.nan
    y: float = math.nan
    vx: float = math.nan
    vy: float = math.nan
    fx: Optional[float] = None
    fy: Optional[float] = None
    index: int = -1


@dataclass(eq=False)
class CoauthorLink:
    r"""A co-authorship pair. `source`/`target` hold node ids until the link force
    binds them, after which they hold the live :class:`AuthorNode` objects.
    """
    source: Union[str, AuthorNode]
    target: Union[str, AuthorNode]
    index: int = -1


@dataclass
class AuthorNetwork:
    nodes: List[AuthorNode] = field(default_factory=list)
    links: List[CoauthorLink] = field(default_factory=list)


def endpoint_id(endpoint : Union[str, AuthorNode]) -> Hashable:
    r"""Id of a link endpoint, whether it is still an id or already bound to a node."""
    return endpoint.id if isinstance(endpoint, AuthorNode) else endpoint

## 1. Loading and validating the input document

def load_author_network(path : Union[str, Path], verbose : bool = True) -> dict:
    r"""Read the raw `{nodes: [...], links: [...]}` document from `path`.
    Raises `FileNotFoundError` if the file is missing; JSON errors propagate.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Author network not found: {path}")
    if verbose:
        print(f"  Loading: {path}")
    with open(path, encoding='utf-8') as f:
        data = json.load(f)
    if verbose and isinstance(data, dict):
        print(f"    Raw: {len(data.get('nodes') or [])} nodes, {len(data.get('links') or [])} links")
    return data


def validate_network(data : dict) -> None:
    r"""Check the document shape and the referential integrity of every link.
    Raises `ValueError` describing the first problem found.
    """
    if not isinstance(data, dict):
        raise ValueError("author network must be an object with 'nodes' and 'links'")
    for section in ('nodes', 'links'):
        if section not in data:
            raise ValueError(f"author network is missing '{section}'")
        if not isinstance(data[section], list):
            raise ValueError(f"'{section}' must be a list")

    ids = set()
    for i, node in enumerate(data['nodes']):
        if not isinstance(node, dict):
            raise ValueError(f"nodes[{i}] must be an object")
        node_id = node.get('id')
        if node_id is None or node_id == '':
            raise ValueError(f"nodes[{i}] has no id")
        if node_id in ids:
            raise ValueError(f"nodes[{i}] repeats id {node_id!r}")
        ids.add(node_id)

    for i, link in enumerate(data['links']):
        if not isinstance(link, dict):
            raise ValueError(f"links[{i}] must be an object")
        for end in ('source', 'target'):
            if end not in link:
                raise ValueError(f"links[{i}] has no {end}")
            if link[end] not in ids:
                raise ValueError(f"links[{i}].{end} references unknown node {link[end]!r}")


def parse_network(data : dict, validate : bool = True) -> AuthorNetwork:
    r"""Turn the raw document into :class:`AuthorNetwork`. Link endpoints stay ids."""
    if validate:
        validate_network(data)
    nodes = []
    for d in data['nodes']:
        titles = d.get('titles')
        nodes.append(AuthorNode(
            id=d['id'],
            affiliation=d.get('affiliation'),
            country=d.get('country') or None,
            publications=d.get('publications', 0),
            titles=list(titles) if titles else None,
        ))
    links = [CoauthorLink(source=l['source'], target=l['target']) for l in data['links']]
    return AuthorNetwork(nodes=nodes, links=links)

## 2. Degree table and radius scale

def compute_degrees(links : Iterable[CoauthorLink]) -> Dict[Hashable, int]:
    r"""Count incident links per node id. Each link increments both endpoints.
    Nodes without links are absent from the table.
    """
    degrees = {}
    for link in links:
        for end in (link.source, link.target):
            key = endpoint_id(end)
            degrees[key] = degrees.get(key, 0) + 1
    return degrees


def extent(values : Iterable[float]) -> Tuple[Optional[float], Optional[float]]:
    r"""Return `(min, max)` of `values`, or `(None, None)` when empty."""
    values = list(values)
    if not values:
        return None, None
    return min(values), max(values)


class SqrtScale:
    r"""Square-root scale mapping `domain` onto `span`.
    A degenerate domain maps every input to the middle of the range.
    With `clamp`, outputs never leave the range.
    """

    def __init__(self, domain : Sequence[float], span : Sequence[float] = RADIUS_RANGE, clamp : bool = True):
        d0, d1 = domain
        self.domain = (0 if d0 is None else d0, 0 if d1 is None else d1)
        self.range = tuple(span)
        self.clamp = clamp

    @staticmethod
    def _transform(x):
        return math.copysign(math.sqrt(abs(x)), x)

    def __call__(self, value : float) -> float:
        t0, t1 = (self._transform(d) for d in self.domain)
        r0, r1 = self.range
        if t1 == t0:
            t = 0.5
        else:
            t = (self._transform(value) - t0) / (t1 - t0)
        if self.clamp:
            t = min(1.0, max(0.0, t))
        return r0 + t * (r1 - r0)


def radius_scale(degrees : Dict[Hashable, int], span : Sequence[float] = RADIUS_RANGE) -> SqrtScale:
    r"""Square-root radius scale over the observed degree range."""
    return SqrtScale(extent(degrees.values()), span)

## 3. Country tally and palette

def country_tally(nodes : Iterable[AuthorNode]) -> Dict[str, int]:
    r"""Count nodes per country in first-encounter order, skipping nodes without one."""
    counts = {}
    for node in nodes:
        if node.country:
            counts[node.country] = counts.get(node.country, 0) + 1
    return counts


def top_countries(counts : Dict[str, int], n : int = TOP_N_COUNTRIES) -> List[str]:
    r"""The `n` most frequent countries. Ties keep first-encounter order (stable sort)."""
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return [country for country, _ in ranked[:n]]


class CountryPalette:
    r"""Assigns the fixed palette to the top countries in rank order.
    Any other country, or a missing one, gets the fallback colour.
    """

    def __init__(self, countries : Sequence[str], palette : Sequence[str] = COUNTRY_PALETTE,
                 fallback : str = FALLBACK_COLOR):
        self.countries = list(countries)[:len(palette)]
        self.fallback = fallback
        self._colors = {c: palette[i] for i, c in enumerate(self.countries)}

    def __call__(self, country : Optional[str]) -> str:
        return self._colors.get(country, self.fallback) if country else self.fallback

    def legend(self) -> List[Tuple[str, str]]:
        return list(self._colors.items())


def country_palette(nodes : Iterable[AuthorNode], n : int = TOP_N_COUNTRIES) -> CountryPalette:
    return CountryPalette(top_countries(country_tally(nodes), n))

## 4. NetworkX graph, statistics and exports

def build_author_graph(network : AuthorNetwork) -> nx.Graph:
    r"""Build an undirected co-authorship graph.
    Repeated pairs accumulate in the edge `weight`. `None` attributes are left out
    and titles are joined with `"; "` so the graph can be written as GraphML.
    """
    graph = nx.Graph()
    for node in network.nodes:
        attrs = {'affiliation': node.affiliation, 'country': node.country,
                 'publications': node.publications,
                 'titles': '; '.join(node.titles) if node.titles else None}
        graph.add_node(node.id, **{k: v for k, v in attrs.items() if v is not None})
    for link in network.links:
        u, v = endpoint_id(link.source), endpoint_id(link.target)
        if graph.has_edge(u, v):
            graph[u][v]['weight'] += 1
        else:
            graph.add_edge(u, v, weight=1)
    return graph


def degree_table(network : AuthorNetwork, degrees : Dict[Hashable, int], scale : Optional[SqrtScale] = None,
                 palette : Optional[CountryPalette] = None) -> pd.DataFrame:
    r"""One row per node: id, affiliation, country, degree, radius and colour."""
    scale = scale or radius_scale(degrees)
    palette = palette or country_palette(network.nodes)
    rows = []
    for node in network.nodes:
        degree = degrees.get(node.id, 0)
        rows.append({
            'id': node.id, 'affiliation': node.affiliation, 'country': node.country,
            'publications': node.publications, 'degree': degree,
            'radius': round(scale(degree), 4), 'color': palette(node.country),
        })
    return pd.DataFrame(rows, columns=['id', 'affiliation', 'country', 'publications',
                                       'degree', 'radius', 'color'])


def export_degree_table(table : pd.DataFrame, file_name : Union[str, Path]) -> None:
    r"""Write the degree table to `file_name` as `.csv`, creating the parent directory."""
    Path(file_name).parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(file_name, index=False)


def network_summary(network : AuthorNetwork, degrees : Dict[Hashable, int], verbose : bool = True) -> dict:
    r"""Node/link counts, degree statistics, components and the country tally."""
    graph = build_author_graph(network)
    degree_series = pd.Series([degrees.get(n.id, 0) for n in network.nodes], dtype=float)
    tally = country_tally(network.nodes)
    summary = {
        'nodes': len(network.nodes),
        'links': len(network.links),
        'isolated': sum(1 for n in network.nodes if n.id not in degrees),
        'components': nx.number_connected_components(graph) if len(graph) else 0,
        'degree': degree_series.describe().to_dict() if len(degree_series) else {},
        'countries': tally,
        'top_countries': top_countries(tally),
    }
    if verbose:
        print(f"    Nodes: {summary['nodes']}, Links: {summary['links']}, "
              f"Isolated: {summary['isolated']}, Components: {summary['components']}")
        if summary['degree']:
            d = summary['degree']
            print(f"    Degree: mean={d['mean']:.2f}, min={d['min']:.0f}, max={d['max']:.0f}")
        print(f"    Top countries: {summary['top_countries']}")
    return summary


def save_author_graph(graph : nx.Graph, file_name : Union[str, Path]) -> None:
    r"""Save the co-authorship graph to a GraphML file."""
    Path(file_name).parent.mkdir(parents=True, exist_ok=True)
    nx.write_graphml(graph, str(file_name))
