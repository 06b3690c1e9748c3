"""
Step 1: Load & Validate the Author Network
==========================================
Which authors collaborate, and how connected is each one?

Pipeline:
  1. Read the {nodes, links} document
  2. Check every link references a known author id
  3. Degree table (each link counts for both ends) + sqrt radius scale
  4. Country tally → top-10 palette
  5. Export degree table (.csv) and co-authorship graph (.graphml)

Uses: network_utils.py
Reads: data/author_network.json
Writes: results/degree_table.csv, results/author_network.graphml

Usage:
    python step1_load_network.py
    python step1_load_network.py --input other_network.json
"""

import argparse
from pathlib import Path

from config import (
    AUTHOR_NETWORK_PATH, DEGREE_TABLE_PATH, GRAPHML_PATH,
    ensure_dirs,
)
from network_utils import (
    load_author_network,
    parse_network,
    compute_degrees,
    radius_scale,
    country_palette,
    degree_table,
    export_degree_table,
    network_summary,
    build_author_graph,
    save_author_graph,
)


def build(args):
    """Load → validate → degree / palette → exports. Returns (network, table)."""
    ensure_dirs()

    print("=" * 60)
    print("  Step 1: Load & Validate Author Network")
    print("=" * 60)

    print("\n1. Loading document...")
    data = load_author_network(args.input)

    print("2. Validating links...")
    network = parse_network(data)
    print(f"   OK: every link references one of {len(network.nodes)} authors")

    print("3. Computing degrees and radius scale...")
    degrees = compute_degrees(network.links)
    scale = radius_scale(degrees)
    print(f"   Degree domain: {scale.domain} → radius {scale.range}")

    print("4. Ranking countries...")
    palette = country_palette(network.nodes)
    for country, color in palette.legend():
        print(f"   {country:<24} {color}")

    print("5. Exporting...")
    table = degree_table(network, degrees, scale, palette)
    export_degree_table(table, args.degree_table)
    print(f"  Saved: {args.degree_table}")
    if not args.no_graphml:
        save_author_graph(build_author_graph(network), args.graphml)
        print(f"  Saved: {args.graphml}")

    print(f"\n  Network statistics:")
    network_summary(network, degrees)
    print("=" * 60)

    return network, table


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Step 1: Load and validate the author network')
    parser.add_argument('--input', type=Path, default=AUTHOR_NETWORK_PATH,
                        help='Author network JSON document')
    parser.add_argument('--degree-table', type=Path, default=DEGREE_TABLE_PATH,
                        help='Where to write the degree table CSV')
    parser.add_argument('--graphml', type=Path, default=GRAPHML_PATH,
                        help='Where to write the GraphML export')
    parser.add_argument('--no-graphml', action='store_true',
                        help='Skip the GraphML export')
    return parser.parse_args(argv)


def main(argv=None):
    return build(parse_args(argv))


if __name__ == '__main__':
    main()
