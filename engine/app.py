import logging
import os

from flask import Flask, jsonify, request
from flask_cors import CORS

from demos import EXAMPLES, build_example
from nn import MLP
from value import Graph, Op, get_backward_json, get_graph_json, json_float

app = Flask(__name__)
CORS(app)

DEFAULT_SEED = int(os.getenv("GRAPH_SEED", "7"))


def parse_seed(raw):
    if raw is None or raw == "":
        return DEFAULT_SEED
    if isinstance(raw, bool):
        raise ValueError("seed must be an integer")
    return int(raw)


def parse_input(raw):
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValueError(f"inputs must be numbers, got {raw!r}")
    return float(raw)


def parse_layer_size(raw):
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValueError(f"layer sizes must be integers, got {raw!r}")
    if isinstance(raw, float) and not raw.is_integer():
        raise ValueError(f"layer sizes must be integers, got {raw!r}")
    return int(raw)


def run_backward(root):
    """Run the instrumented backward pass and package both data products."""
    records = root.verbose_backward()
    return {
        "graph": get_graph_json(root),
        "backward": get_backward_json(records),
    }


def unknown_example(name):
    return (
        jsonify(
            {
                "status": "error",
                "message": f"Unknown example {name!r}. Available: {', '.join(sorted(EXAMPLES))}",
            }
        ),
        404,
    )


def bad_request(exc):
    return jsonify({"status": "error", "message": str(exc)}), 400


@app.route("/api/status", methods=["GET"])
def status():
    """List the example graphs and operation tags the engine knows about."""
    return jsonify(
        {
            "examples": sorted(EXAMPLES),
            "operations": [op.value for op in Op if op is not Op.NONE],
        }
    )


@app.route("/api/examples/<name>", methods=["GET"])
def get_example(name):
    """Return the forward graph of an example, before any backward pass."""
    if name not in EXAMPLES:
        return unknown_example(name)
    try:
        seed = parse_seed(request.args.get("seed"))
        root = build_example(name, Graph(), seed=seed)
        return jsonify({"status": "success", "root": str(root.id), "graph": get_graph_json(root)})

    except ValueError as exc:
        return bad_request(exc)
    except Exception:
        logging.exception("Error while building example graph")
        return (
            jsonify(
                {
                    "status": "error",
                    "message": "An internal error occurred while building the graph.",
                }
            ),
            500,
        )


@app.route("/api/examples/<name>/backward", methods=["POST"])
def backward_example(name):
    """Run the verbose backward pass on an example graph."""
    if name not in EXAMPLES:
        return unknown_example(name)
    try:
        payload = request.get_json(silent=True) or {}
        seed = parse_seed(payload.get("seed"))
        root = build_example(name, Graph(), seed=seed)
        result = run_backward(root)
        return jsonify({"status": "success", "root": str(root.id), **result})

    except (ValueError, TypeError) as exc:
        return bad_request(exc)
    except Exception:
        logging.exception("Error while running backward pass")
        return (
            jsonify(
                {
                    "status": "error",
                    "message": "An internal error occurred while running the backward pass.",
                }
            ),
            500,
        )


@app.route("/api/network", methods=["POST"])
def network():
    """Build an MLP, run it on the given inputs and backpropagate from output 0."""
    try:
        payload = request.get_json(silent=True) or {}
        inputs = payload.get("inputs", [2.0, 3.0])
        layer_sizes = payload.get("layer_sizes", [2, 2, 1])
        seed = parse_seed(payload.get("seed"))
        if not isinstance(inputs, list) or not isinstance(layer_sizes, list):
            raise ValueError("inputs and layer_sizes must be lists")

        graph = Graph()
        x = [graph.leaf(parse_input(v), label=f"x{i + 1}") for i, v in enumerate(inputs)]
        model = MLP(graph, len(x), [parse_layer_size(n) for n in layer_sizes], rng=seed)
        outputs = model(x)
        result = run_backward(outputs[0])

        return jsonify(
            {
                "status": "success",
                "outputs": [json_float(out.data) for out in outputs],
                "parameter_count": len(model.parameters()),
                **result,
            }
        )

    except (ValueError, TypeError) as exc:
        return bad_request(exc)
    except Exception:
        logging.exception("Error while running network")
        return (
            jsonify(
                {
                    "status": "error",
                    "message": "An internal error occurred while running the network.",
                }
            ),
            500,
        )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    debug = os.environ.get("FLASK_DEBUG", "0") == "1"
    port = int(os.environ.get("FLASK_PORT", "5000"))
    app.run(debug=debug, port=port, host="127.0.0.1")
