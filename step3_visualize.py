"""
Step 3: Interactive Author Network Explorer
===========================================
Reads the author network (and the settled layout from step 2, if present)
and generates a standalone HTML file with a D3.js force-directed view.

Features:
  - Nodes sized by degree (sqrt scale), coloured by top-10 country
  - Hover: highlight authors of the same affiliation
  - Click: timed tooltip with author details and titles
  - Drag: pin a node while held
  - Sliders: repulsion, collision radius, link strength (live restart)
  - Zoom / pan (0.5× – 5×)

Reads: data/author_network.json, results/layout_positions.json (optional)
Writes: results/author_explorer.html

Usage:
    python step3_visualize.py
    python step3_visualize.py --no-positions
"""

import argparse
import json
from pathlib import Path

from config import (
    AUTHOR_NETWORK_PATH, POSITIONS_PATH, EXPLORER_HTML_PATH,
    VIEWBOX, INNER_OFFSET, D3_CDN, LINK_COLOR, FALLBACK_COLOR,
    COLLIDE_MULTIPLIER, CENTER_STRENGTH, CHARGE_STRENGTH, CHARGE_DISTANCE_MAX,
    LINK_DISTANCE, LINK_STRENGTH, REBUILD_CHARGE_DISTANCE_MAX, REBUILD_LINK_DISTANCE,
    HOVER_OPACITY, DIMMED_OPACITY,
    DRAG_ALPHA_TARGET, RELAX_DELAY_MS, TOOLTIP_OFFSET, TOOLTIP_OPACITY,
    TOOLTIP_FADE_IN_MS, TOOLTIP_HOLD_MS, TOOLTIP_FADE_OUT_MS,
    ZOOM_EXTENT, SLIDERS, COLLISION_SLIDER_DIVISOR,
    ensure_dirs,
)
from network_utils import (
    load_author_network, parse_network, compute_degrees, radius_scale, country_palette,
)
from renderer import tooltip_lines
from scene import text_block


def load_positions(path):
    """Settled positions from step 2, or {} when not available."""
    path = Path(path)
    if not path.exists():
        print(f"  No layout at {path}; browser starts from scratch")
        return {}
    print(f"  Loading: {path}")
    with open(path) as f:
        return json.load(f)


def extract_graph_data(network, positions=None):
    """Per-node display fields (radius, colour, tooltip) + links + legend."""
    positions = positions or {}
    degrees = compute_degrees(network.links)
    scale = radius_scale(degrees)
    palette = country_palette(network.nodes)

    nodes = []
    n_placed = 0
    for node in network.nodes:
        entry = {
            'id': node.id, 'affiliation': node.affiliation, 'country': node.country,
            'publications': node.publications, 'degree': degrees.get(node.id, 0),
            'r': round(scale(degrees.get(node.id, 0)), 4),
            'color': palette(node.country),
            'tooltip': text_block(tooltip_lines(node)),
        }
        pos = positions.get(node.id)
        if pos is not None:
            entry['x'], entry['y'] = pos['x'], pos['y']
            n_placed += 1
        nodes.append(entry)

    links = [{'source': l.source, 'target': l.target} for l in network.links]
    print(f"    Export: nodes={len(nodes)}, links={len(links)}, pre-placed={n_placed}")
    return {'nodes': nodes, 'links': links, 'legend': palette.legend(), 'settled': n_placed == len(nodes) > 0}


def explorer_config():
    """Constants the page script needs, mirrored from config.py."""
    return {
        'viewBox': VIEWBOX, 'innerOffset': list(INNER_OFFSET), 'linkColor': LINK_COLOR,
        'fallbackColor': FALLBACK_COLOR,
        'collide': COLLIDE_MULTIPLIER, 'center': CENTER_STRENGTH,
        'charge': CHARGE_STRENGTH, 'chargeDistanceMax': CHARGE_DISTANCE_MAX,
        'linkDistance': LINK_DISTANCE, 'linkStrength': LINK_STRENGTH,
        'rebuildChargeDistanceMax': REBUILD_CHARGE_DISTANCE_MAX,
        'rebuildLinkDistance': REBUILD_LINK_DISTANCE,
        'collisionDivisor': COLLISION_SLIDER_DIVISOR,
        'hoverOpacity': HOVER_OPACITY, 'dimmedOpacity': DIMMED_OPACITY,
        'dragAlphaTarget': DRAG_ALPHA_TARGET, 'relaxDelay': RELAX_DELAY_MS,
        'tooltip': {'offset': list(TOOLTIP_OFFSET), 'opacity': TOOLTIP_OPACITY,
                    'fadeIn': TOOLTIP_FADE_IN_MS, 'hold': TOOLTIP_HOLD_MS,
                    'fadeOut': TOOLTIP_FADE_OUT_MS},
        'zoomExtent': list(ZOOM_EXTENT),
    }


def slider_markup():
    rows = []
    for name, slider in SLIDERS.items():
        rows.append(
            f'<div class="slider-item"><label for="{name}">{slider["label"]} '
            f'<span class="val" id="{name}-val">{slider["value"]}</span></label>'
            f'<input type="range" id="{name}" min="{slider["min"]}" max="{slider["max"]}" '
            f'step="{slider["step"]}" value="{slider["value"]}"></div>'
        )
    return '\n'.join(rows)


def _script_json(obj):
    # keep "</script>" inside string data from closing the tag
    return json.dumps(obj, separators=(',', ':')).replace('</', '<\\/')


def generate_html(graph_data, output_path):
    """Embed data into HTML template and write file."""
    html = (HTML_TEMPLATE
            .replace('__D3_CDN__', D3_CDN)
            .replace('__VIEWBOX__', VIEWBOX)
            .replace('__SLIDERS__', slider_markup())
            .replace('__CONFIG__', _script_json(explorer_config()))
            .replace('__GRAPH_DATA__', _script_json(graph_data)))

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(str(output_path), 'w', encoding='utf-8') as f:
        f.write(html)
    print(f"  Saved: {output_path} ({len(html)//1024} KB)")
    return html


HTML_TEMPLATE = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<title>Author Collaboration Network</title>
<script src="__D3_CDN__"></script>
<style>
*{margin:0;padding:0;box-sizing:border-box}
body{font-family:'DM Sans',Helvetica,sans-serif;background:#fafafa;color:#222}
.controls{display:flex;gap:24px;align-items:flex-end;padding:10px 16px;border-bottom:1px solid #e5e5e5;background:#fff}
.controls h1{font-size:15px;font-weight:700;margin-right:12px}
.slider-item label{display:flex;justify-content:space-between;gap:8px;font-size:12px;color:#555;margin-bottom:3px}
.slider-item .val{font-family:monospace;font-size:11px;background:#f0f0f0;padding:0 4px;border-radius:3px}
input[type="range"]{width:180px}
.legend{display:flex;flex-wrap:wrap;gap:8px;padding:6px 16px;font-size:11px;color:#555}
.legend-item{display:flex;align-items:center;gap:4px}
.legend-dot{width:9px;height:9px;border-radius:50%}
#graph-area{position:relative}
svg{width:100%;height:calc(100vh - 90px);display:block}
circle{stroke:#fff;stroke-width:0.8px;cursor:pointer}
.tooltip{position:absolute;background:#fff;border:1px solid #ccc;border-radius:5px;padding:8px 10px;font-size:12px;line-height:1.5;pointer-events:none;max-width:320px;box-shadow:0 4px 16px rgba(0,0,0,0.15)}
.error{position:absolute;top:40px;left:50%;transform:translateX(-50%);background:#fff1f0;border:1px solid #e41a1c;color:#a8071a;padding:10px 14px;border-radius:5px;font-size:13px}
</style>
</head>
<body>
<div class="controls">
<h1>Author Collaboration Network</h1>
__SLIDERS__
</div>
<div class="legend" id="legend"></div>
<div id="graph-area"><svg viewBox="__VIEWBOX__"></svg></div>
<script>
const DATA=__GRAPH_DATA__;
const CFG=__CONFIG__;

function showError(msg){d3.select('#graph-area').append('div').attr('class','error').text(msg)}

function legend(entries){
const lg=d3.select('#legend');
entries.forEach(([name,color])=>{const it=lg.append('div').attr('class','legend-item');it.append('div').attr('class','legend-dot').style('background',color);it.append('span').text(name)});
const it=lg.append('div').attr('class','legend-item');it.append('div').attr('class','legend-dot').style('background',CFG.fallbackColor);it.append('span').text('other')}

function simulate(data,svg){
const [width,height]=svg.attr('viewBox').split(' ').slice(2).map(Number);
if(!width||!height)throw new Error('drawing surface has no usable viewBox');
const zoomGroup=svg.append('g');
const mainGroup=zoomGroup.append('g').attr('transform',`translate(${CFG.innerOffset[0]}, ${CFG.innerOffset[1]})`);

const links=mainGroup.append('g').attr('transform',`translate(${width/2},${height/2})`)
.selectAll('line').data(data.links).enter().append('line').attr('stroke',CFG.linkColor);

const nodes=mainGroup.append('g').attr('transform',`translate(${width/2},${height/2})`)
.selectAll('g').data(data.nodes).enter().append('g')
.on('mouseover',(event,d)=>nodes.selectAll('circle').style('opacity',n=>n.affiliation===d.affiliation?CFG.hoverOpacity:CFG.dimmedOpacity))
.on('mouseout',()=>nodes.selectAll('circle').style('opacity',CFG.hoverOpacity))
.on('click',(event,d)=>{
const tip=d3.select('body').append('div').attr('class','tooltip').style('opacity',0);
tip.transition().duration(CFG.tooltip.fadeIn).style('opacity',CFG.tooltip.opacity);
tip.html(d.tooltip).style('left',`${event.pageX+CFG.tooltip.offset[0]}px`).style('top',`${event.pageY+CFG.tooltip.offset[1]}px`);
setTimeout(()=>tip.transition().duration(CFG.tooltip.fadeOut).style('opacity',0).remove(),CFG.tooltip.hold)});

nodes.append('circle').attr('r',d=>d.r).attr('fill',d=>d.color);

const drag=d3.drag()
.on('start',(event,d)=>{if(!event.active)simulation.alphaTarget(CFG.dragAlphaTarget).restart();d.fx=d.x;d.fy=d.y})
.on('drag',(event,d)=>{d.fx=event.x;d.fy=event.y})
.on('end',(event,d)=>{if(!event.active)simulation.alphaTarget(0);d.fx=null;d.fy=null});
nodes.call(drag);

const simulation=d3.forceSimulation(data.nodes)
.force('collide',d3.forceCollide(d=>d.r*CFG.collide))
.force('x',d3.forceX().strength(CFG.center))
.force('y',d3.forceY().strength(CFG.center))
.force('charge',d3.forceManyBody().strength(CFG.charge).distanceMax(CFG.chargeDistanceMax))
.force('link',d3.forceLink(data.links).id(d=>d.id).distance(CFG.linkDistance).strength(CFG.linkStrength))
.on('tick',()=>{
nodes.attr('transform',d=>`translate(${d.x},${d.y})`);
links.attr('x1',d=>d.source.x).attr('x2',d=>d.target.x).attr('y1',d=>d.source.y).attr('y2',d=>d.target.y)});
if(data.settled)simulation.alpha(CFG.dragAlphaTarget);

let relaxTimer=null;
const updateForces=()=>{
const value=id=>+document.getElementById(id).value;
const chargeStrength=value('chargeStrength'),collisionRadius=value('collisionRadius'),linkStrength=value('linkStrength');
['chargeStrength','collisionRadius','linkStrength'].forEach(id=>document.getElementById(id+'-val').textContent=value(id));
simulation
.force('charge',d3.forceManyBody().strength(chargeStrength).distanceMax(CFG.rebuildChargeDistanceMax))
.force('collide',d3.forceCollide().radius(d=>d.r*collisionRadius/CFG.collisionDivisor))
.force('link',d3.forceLink(data.links).id(d=>d.id).distance(CFG.rebuildLinkDistance).strength(linkStrength))
.alpha(1).restart();
clearTimeout(relaxTimer);
relaxTimer=setTimeout(()=>{relaxTimer=null;simulation.alphaTarget(0)},CFG.relaxDelay)};

document.querySelectorAll('#chargeStrength, #collisionRadius, #linkStrength')
.forEach(input=>input.addEventListener('input',updateForces));

svg.call(d3.zoom().scaleExtent(CFG.zoomExtent).on('zoom',event=>zoomGroup.attr('transform',event.transform)));
}

legend(DATA.legend||[]);
if(!DATA.nodes||!DATA.nodes.length){showError('No authors to display.')}
else{try{simulate(DATA,d3.select('svg'))}catch(err){showError(`Could not render network: ${err.message}`)}}
</script>
</body>
</html>"""


def build_explorer(args):
    print("=" * 60)
    print("  Step 3: Interactive Author Network Explorer")
    print("=" * 60)

    ensure_dirs()
    network = parse_network(load_author_network(args.input))
    positions = {} if args.no_positions else load_positions(args.positions)
    graph_data = extract_graph_data(network, positions)
    generate_html(graph_data, args.output)

    print("=" * 60)
    return graph_data


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Step 3: Generate the browser explorer')
    parser.add_argument('--input', type=Path, default=AUTHOR_NETWORK_PATH)
    parser.add_argument('--positions', type=Path, default=POSITIONS_PATH)
    parser.add_argument('--output', type=Path, default=EXPLORER_HTML_PATH)
    parser.add_argument('--no-positions', action='store_true',
                        help='Ignore the settled layout from step 2')
    return parser.parse_args(argv)


def main(argv=None):
    return build_explorer(parse_args(argv))


if __name__ == '__main__':
    main()
