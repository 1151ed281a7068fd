import argparse
import json
import logging
import os
from pathlib import Path

from demos import EXAMPLES, build_example
from value import Graph, get_backward_json, get_graph_json

logger = logging.getLogger(__name__)

OUTPUT_DIR = Path(
    os.getenv(
        "GRAPH_OUTPUT_DIR",
        Path(__file__).resolve().parent.parent / "visualizer" / "src",
    )
)
DEFAULT_SEED = int(os.getenv("GRAPH_SEED", "7"))


def export_graph(name, seed=DEFAULT_SEED, output_dir=None):
    """Build an example, backpropagate it verbosely and write both traces as JSON."""
    output_dir = Path(output_dir) if output_dir is not None else OUTPUT_DIR
    output_dir.mkdir(parents=True, exist_ok=True)

    graph = Graph()
    root = build_example(name, graph, seed=seed)
    records = root.verbose_backward()
    logger.info("Example %s: %d nodes, %d contributions", name, len(graph), len(records))

    graph_payload = get_graph_json(root)
    graph_payload["root"] = str(root.id)
    graph_payload["example"] = name
    graph_payload["seed"] = seed
    (output_dir / "graph.json").write_text(json.dumps(graph_payload, indent=2, allow_nan=False))
    (output_dir / "backward.json").write_text(json.dumps(get_backward_json(records), indent=2, allow_nan=False))

    return {
        "example": name,
        "root_value": root.data,
        "node_count": len(graph_payload["nodes"]),
        "edge_count": len(graph_payload["edges"]),
        "contribution_count": len(records),
        "output_dir": str(output_dir),
    }


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Backpropagate an example graph and export it for the visualizer."
    )
    parser.add_argument(
        "--example",
        choices=sorted(EXAMPLES),
        default="simple_arithmetic",
        help="Example graph to build (default: simple_arithmetic)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=DEFAULT_SEED,
        help=f"Random seed for network weights (default: {DEFAULT_SEED})",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help=f"Directory for graph.json and backward.json (default: {OUTPUT_DIR})",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress the summary output",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING if args.quiet else logging.INFO)

    summary = export_graph(args.example, seed=args.seed, output_dir=args.output_dir)

    if not args.quiet:
        print(f"\nArtifacts exported to {summary['output_dir']}")
        print(f"Root value: {summary['root_value']:.4f}")
        print(
            f"Nodes: {summary['node_count']} | Edges: {summary['edge_count']} "
            f"| Contributions: {summary['contribution_count']}"
        )
    return summary


if __name__ == "__main__":
    main()
