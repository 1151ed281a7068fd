"""Named example graphs served to the visualizer."""

from nn import MLP


def simple_arithmetic(graph, seed=None):
    # L = (a * b + c) * f
    a = graph.leaf(2.0, label="a")
    b = graph.leaf(-3.0, label="b")
    c = graph.leaf(10.0, label="c")
    f = graph.leaf(-2.0, label="f")
    e = a * b
    e.label = "e"
    d = e + c
    d.label = "d"
    L = d * f
    L.label = "L"
    return L


def simple_neuron(graph, seed=None):
    # o = tanh(x1*w1 + x2*w2 + b), with b picked so that o is ~0.7071
    x1 = graph.leaf(2.0, label="x1")
    x2 = graph.leaf(0.0, label="x2")
    w1 = graph.leaf(-3.0, label="w1")
    w2 = graph.leaf(1.0, label="w2")
    b = graph.leaf(6.8813735870195432, label="b")

    x1w1 = x1 * w1
    x1w1.label = "x1*w1"
    x2w2 = x2 * w2
    x2w2.label = "x2*w2"
    x1w1x2w2 = x1w1 + x2w2
    x1w1x2w2.label = "x1*w1 + x2*w2"
    n = x1w1x2w2 + b
    n.label = "n"
    o = n.tanh()
    o.label = "o"
    return o


def multi_layer_perceptron(graph, seed=None):
    x = [graph.leaf(2.0, label="x1"), graph.leaf(3.0, label="x2")]
    model = MLP(graph, 2, [2, 2, 1], rng=seed)
    out = model(x)[0]
    out.label = "out"
    return out


EXAMPLES = {
    "simple_arithmetic": simple_arithmetic,
    "simple_neuron": simple_neuron,
    "multi_layer_perceptron": multi_layer_perceptron,
}


def build_example(name, graph, seed=None):
    if name not in EXAMPLES:
        raise KeyError(f"unknown example {name!r}")
    return EXAMPLES[name](graph, seed=seed)
