import random

from value import Graph


def _make_rng(rng):
    if isinstance(rng, random.Random):
        return rng
    # an int seed, or None for a fresh unseeded source
    return random.Random(rng)


class Module:

    def parameters(self):
        return []


class Neuron(Module):

    def __init__(self, graph, nin, rng=None):
        if nin <= 0:
            raise ValueError(f"neuron needs at least one input, got {nin}")
        rng = _make_rng(rng)
        self.graph = graph
        self.w = [graph.leaf(rng.uniform(-1, 1)) for _ in range(nin)]
        self.b = graph.leaf(rng.uniform(-1, 1))

    def __call__(self, x):
        if len(x) != len(self.w):
            raise ValueError(f"expected {len(self.w)} inputs, got {len(x)}")
        x = self.graph.lift_all(*x)
        # w * x + b
        act = self.graph.mul(x[0], self.w[0])
        for xi, wi in zip(x[1:], self.w[1:]):
            act = self.graph.add(act, self.graph.mul(xi, wi))
        act = self.graph.add(act, self.b)
        return self.graph.tanh(act)

    forward = __call__

    def parameters(self):
        return self.w + [self.b]

    def __repr__(self):
        return f"TanhNeuron({len(self.w)})"


class Layer(Module):

    def __init__(self, graph, nin, nout, rng=None):
        rng = _make_rng(rng)
        self.graph = graph
        self.nin = nin
        self.neurons = [Neuron(graph, nin, rng) for _ in range(nout)]

    def __call__(self, x):
        if len(x) != self.nin:
            raise ValueError(f"expected {self.nin} inputs, got {len(x)}")
        x = self.graph.lift_all(*x)
        return [n(x) for n in self.neurons]

    forward = __call__

    def parameters(self):
        return [p for n in self.neurons for p in n.parameters()]

    def __repr__(self):
        return f"Layer of [{', '.join(str(n) for n in self.neurons)}]"


class MLP(Module):
    """Stack of tanh layers; ``MLP(graph, 2, [2, 2, 1])`` has 15 parameters."""

    def __init__(self, graph, nin, nouts, rng=None):
        if not isinstance(graph, Graph):
            raise TypeError("MLP parameters must live in a Graph")
        nouts = list(nouts)
        if not nouts:
            raise ValueError("layer sizes must not be empty")
        if nin <= 0 or any(n <= 0 for n in nouts):
            raise ValueError(f"sizes must be positive, got input {nin} and layers {nouts}")
        rng = _make_rng(rng)
        self.graph = graph
        sz = [nin] + nouts
        self.layers = [Layer(graph, sz[i], sz[i + 1], rng) for i in range(len(nouts))]

    def __call__(self, x):
        for layer in self.layers:
            x = layer(x)
        return x

    forward = __call__

    def parameters(self):
        return [p for layer in self.layers for p in layer.parameters()]

    def __repr__(self):
        return f"MLP of [{', '.join(str(layer) for layer in self.layers)}]"
