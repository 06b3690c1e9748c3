"""
Step 2: Settle the Force Layout
===============================
Runs the renderer headless, ticking the solver synchronously until it converges,
then writes the settled scene three ways.

Reads: data/author_network.json
Writes: results/layout_positions.json     (id → {x, y}, used by step 3)
        results/author_network_layout.svg (scene graph as SVG)
        results/figures/author_network_layout.pdf + .png

Usage:
    python step2_layout.py
    python step2_layout.py --max-ticks 200 --seed 7
"""

import argparse
import json
from pathlib import Path

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection
from matplotlib.lines import Line2D

from config import (
    AUTHOR_NETWORK_PATH, POSITIONS_PATH, LAYOUT_SVG_PATH, FIGURES_DIR,
    VIEWBOX, LINK_COLOR, FALLBACK_COLOR, LAYOUT_SEED,
    ensure_dirs,
)
from network_utils import load_author_network
from renderer import GraphRenderer
from scene import create_surface


def setup_style():
    """Plain figure style for layout snapshots."""
    matplotlib.rcParams.update({
        'font.family': 'serif',
        'font.serif': ['Times New Roman', 'Times', 'DejaVu Serif'],
        'font.size': 10,
        'legend.fontsize': 8,
        'figure.dpi': 150,
        'savefig.dpi': 300,
        'savefig.bbox': 'tight',
        'savefig.pad_inches': 0.05,
    })


def save_fig(fig, name, folder=FIGURES_DIR):
    """Save figure as both PDF and PNG."""
    folder = Path(folder)
    folder.mkdir(parents=True, exist_ok=True)
    fig.savefig(str(folder / f'{name}.pdf'))
    fig.savefig(str(folder / f'{name}.png'))
    plt.close(fig)
    print(f"  Saved: {name}.pdf + .png")


def plot_layout(renderer):
    """Draw the settled layout with the renderer's radii and colours."""
    nodes = renderer.network.nodes
    fig, ax = plt.subplots(figsize=(8, 5))
    segments = [[(l.source.x, l.source.y), (l.target.x, l.target.y)] for l in renderer.network.links]
    ax.add_collection(LineCollection(segments, colors=LINK_COLOR, linewidths=0.5, alpha=0.6, zorder=1))
    # scatter sizes are in pt², radii in px
    ax.scatter([n.x for n in nodes], [n.y for n in nodes],
               s=[(renderer.radius(n) * 1.2) ** 2 for n in nodes],
               c=[renderer.color_of(n.country) for n in nodes],
               edgecolors='white', linewidths=0.4, zorder=2)

    handles = [Line2D([0], [0], marker='o', color='none', markerfacecolor=c, markersize=6, label=name)
               for name, c in renderer.color_of.legend()]
    handles.append(Line2D([0], [0], marker='o', color='none', markerfacecolor=FALLBACK_COLOR,
                          markersize=6, label='other'))
    ax.legend(handles=handles, loc='center left', bbox_to_anchor=(1.0, 0.5), frameon=False)
    ax.set_aspect('equal')
    ax.invert_yaxis()  # screen coordinates
    ax.axis('off')
    ax.set_title(f"Co-authorship network ({len(nodes)} authors, {len(renderer.network.links)} links)")
    return fig


def layout(args):
    """Settle the layout and export positions, SVG and figure. Returns the renderer."""
    ensure_dirs()
    setup_style()

    print("=" * 60)
    print("  Step 2: Settle Force Layout")
    print("=" * 60)

    print("\n1. Loading document...")
    data = load_author_network(args.input)

    print("2. Building scene and starting solver...")
    renderer = GraphRenderer(data, create_surface(VIEWBOX), seed=args.seed)

    print("3. Running until converged...")
    ticks = renderer.settle(max_ticks=args.max_ticks)
    sim = renderer.simulation
    status = 'converged' if sim.alpha < sim.alpha_min else 'stopped at tick limit'
    print(f"   {status}: {ticks} ticks, alpha={sim.alpha:.4f}")

    print("4. Exporting...")
    args.positions.parent.mkdir(parents=True, exist_ok=True)
    with open(args.positions, 'w') as f:
        json.dump(renderer.positions(), f, indent=1)
    print(f"  Saved: {args.positions}")

    args.svg.parent.mkdir(parents=True, exist_ok=True)
    with open(args.svg, 'w', encoding='utf-8') as f:
        f.write(renderer.surface.to_svg())
    print(f"  Saved: {args.svg}")

    if not args.no_figure:
        save_fig(plot_layout(renderer), 'author_network_layout', folder=args.figures)

    print("=" * 60)
    return renderer


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Step 2: Settle the force layout')
    parser.add_argument('--input', type=Path, default=AUTHOR_NETWORK_PATH)
    parser.add_argument('--positions', type=Path, default=POSITIONS_PATH)
    parser.add_argument('--svg', type=Path, default=LAYOUT_SVG_PATH)
    parser.add_argument('--figures', type=Path, default=FIGURES_DIR)
    parser.add_argument('--max-ticks', type=int, default=None,
                        help='Stop after this many ticks even if not converged')
    parser.add_argument('--seed', type=int, default=LAYOUT_SEED)
    parser.add_argument('--no-figure', action='store_true',
                        help='Skip the matplotlib snapshot')
    return parser.parse_args(argv)


def main(argv=None):
    return layout(parse_args(argv))


if __name__ == '__main__':
    main()
