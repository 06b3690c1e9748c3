import json

import networkx as nx
import pandas as pd
import pytest

from config import COUNTRY_PALETTE, FALLBACK_COLOR
from network_utils import (
    AuthorNode, CoauthorLink, SqrtScale,
    load_author_network, validate_network, parse_network,
    compute_degrees, radius_scale, extent,
    country_tally, top_countries, CountryPalette, country_palette,
    build_author_graph, degree_table, export_degree_table, network_summary,
    save_author_graph,
)


def _nodes(countries):
    return [AuthorNode(id=str(i), country=c) for i, c in enumerate(countries)]


# --- degrees -------------------------------------------------

def test_degrees_count_both_endpoints(small_doc):
    network = parse_network(small_doc)
    degrees = compute_degrees(network.links)
    assert degrees == {'A': 1, 'B': 2, 'C': 1}
    assert sum(degrees.values()) == 2 * len(network.links)


def test_degrees_accept_bound_links():
    a, b = AuthorNode(id='a'), AuthorNode(id='b')
    links = [CoauthorLink(a, b), CoauthorLink('a', 'b')]
    assert compute_degrees(links) == {'a': 2, 'b': 2}


def test_degrees_sum_on_sample(sample_doc):
    network = parse_network(sample_doc)
    degrees = compute_degrees(network.links)
    assert sum(degrees.values()) == 2 * len(sample_doc['links'])
    assert 'M. Reyes' not in degrees


# --- radius scale --------------------------------------------

def test_radius_scale_endpoints_and_monotonic():
    scale = radius_scale({'a': 1, 'b': 4, 'c': 9})
    assert scale(1) == pytest.approx(3)
    assert scale(9) == pytest.approx(12)
    values = [scale(d) for d in range(1, 10)]
    assert values == sorted(values)


def test_radius_scale_is_sqrt():
    scale = SqrtScale((0, 4), (0, 10))
    assert scale(1) == pytest.approx(5)


def test_radius_scale_clamps_unseen_degree():
    scale = radius_scale({'a': 1, 'b': 2})
    assert scale(0) == pytest.approx(3)
    assert scale(100) == pytest.approx(12)


def test_radius_scale_degenerate_domain_uses_midpoint():
    scale = radius_scale({'a': 2, 'b': 2})
    assert scale(2) == pytest.approx(7.5)
    assert radius_scale({})(0) == pytest.approx(7.5)


def test_extent():
    assert extent([3, 1, 2]) == (1, 3)
    assert extent([]) == (None, None)


# --- countries -----------------------------------------------

def test_country_example(small_doc):
    network = parse_network(small_doc)
    tally = country_tally(network.nodes)
    assert tally == {'US': 2, 'FR': 1}
    assert top_countries(tally) == ['US', 'FR']

    color_of = country_palette(network.nodes)
    assert color_of('US') == COUNTRY_PALETTE[0]
    assert color_of('FR') == COUNTRY_PALETTE[1]
    assert color_of('DE') == FALLBACK_COLOR
    assert color_of(None) == FALLBACK_COLOR


def test_country_tally_skips_missing():
    nodes = _nodes(['US', None, '', 'US'])
    assert country_tally(nodes) == {'US': 2}


def test_top_countries_tie_keeps_encounter_order():
    tally = country_tally(_nodes(['X', 'Y', 'Y', 'X', 'Z']))
    assert top_countries(tally) == ['X', 'Y', 'Z']


def test_only_ten_countries_get_colours():
    countries = []
    for i in range(12):
        countries += [f"C{i}"] * (20 - i)
    color_of = country_palette(_nodes(countries))
    assert color_of.countries == [f"C{i}" for i in range(10)]
    assert [color_of(f"C{i}") for i in range(10)] == COUNTRY_PALETTE
    assert color_of('C10') == FALLBACK_COLOR
    assert color_of('C11') == FALLBACK_COLOR


def test_palette_legend_order():
    palette = CountryPalette(['b', 'a'])
    assert palette.legend() == [('b', COUNTRY_PALETTE[0]), ('a', COUNTRY_PALETTE[1])]


# --- loading & validation ------------------------------------

def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_author_network(tmp_path / 'nope.json', verbose=False)


def test_load_roundtrip(tmp_path, small_doc):
    path = tmp_path / 'net.json'
    path.write_text(json.dumps(small_doc))
    assert load_author_network(path, verbose=False) == small_doc


@pytest.mark.parametrize('doc, message', [
    ({'links': []}, "missing 'nodes'"),
    ({'nodes': []}, "missing 'links'"),
    ({'nodes': {}, 'links': []}, "'nodes' must be a list"),
    ({'nodes': [{'affiliation': 'X'}], 'links': []}, 'has no id'),
    ({'nodes': [{'id': 'a'}, {'id': 'a'}], 'links': []}, 'repeats id'),
    ({'nodes': [{'id': 'a'}], 'links': [{'source': 'a'}]}, 'has no target'),
    ({'nodes': [{'id': 'a'}], 'links': [{'source': 'a', 'target': 'zz'}]}, "unknown node 'zz'"),
])
def test_validate_rejects(doc, message):
    with pytest.raises(ValueError, match=message):
        validate_network(doc)


def test_parse_network_fields(small_doc):
    small_doc['nodes'][2]['country'] = ''
    network = parse_network(small_doc)
    a, b, c = network.nodes
    assert a.titles == ['First paper', 'Second <paper>']
    assert b.titles is None
    assert c.country is None
    assert a.fx is None and a.fy is None
    assert network.links[0].source == 'A'


# --- graph & exports -----------------------------------------

def test_build_author_graph_merges_repeated_pairs(small_doc):
    small_doc['links'].append({'source': 'B', 'target': 'A'})
    graph = build_author_graph(parse_network(small_doc))
    assert graph.number_of_nodes() == 3
    assert graph['A']['B']['weight'] == 2
    assert 'titles' not in graph.nodes['B']


def test_graphml_roundtrip(tmp_path, sample_doc):
    graph = build_author_graph(parse_network(sample_doc))
    path = tmp_path / 'g.graphml'
    save_author_graph(graph, path)
    loaded = nx.read_graphml(str(path))
    assert loaded.number_of_nodes() == graph.number_of_nodes()
    assert loaded.number_of_edges() == graph.number_of_edges()


def test_degree_table_export(tmp_path, small_doc):
    network = parse_network(small_doc)
    table = degree_table(network, compute_degrees(network.links))
    assert list(table['degree']) == [1, 2, 1]
    assert list(table['radius']) == pytest.approx([3, 12, 3])
    path = tmp_path / 'out' / 'degrees.csv'
    export_degree_table(table, path)
    assert list(pd.read_csv(path)['id']) == ['A', 'B', 'C']


def test_network_summary(sample_doc):
    network = parse_network(sample_doc)
    summary = network_summary(network, compute_degrees(network.links), verbose=False)
    assert summary['nodes'] == 20
    assert summary['links'] == 20
    assert summary['isolated'] == 1
    # Russia, USA and China tie at 3; Russia is encountered first
    assert summary['top_countries'][:3] == ['Russia', 'USA', 'China']
