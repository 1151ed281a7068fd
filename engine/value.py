import logging
import math
from collections import namedtuple
from enum import Enum

logger = logging.getLogger(__name__)


class Op(Enum):
    NONE = ""
    ADD = "+"
    MUL = "*"
    POW = "**"
    RELU = "ReLU"
    EXP = "exp"
    TANH = "tanh"


# one gradient update pushed from a result node (source) to an operand (destination)
Contribution = namedtuple("Contribution", ["source", "destination", "description"])


def _power(x, n):
    """x ** n with IEEE-754 inf/nan instead of Python exceptions or complex results."""
    odd = float(n).is_integer() and int(n) % 2 == 1
    try:
        out = x ** n
    except (ZeroDivisionError, OverflowError):
        negative = odd and math.copysign(1.0, x) < 0
        return -math.inf if negative else math.inf
    if isinstance(out, complex):
        return math.nan
    return float(out)


def _exp(x):
    try:
        return math.exp(x)
    except OverflowError:
        return math.inf


class Value:
    """A scalar node living in a Graph arena, addressed by its integer id."""

    __slots__ = ("graph", "id", "label", "_data", "_grad", "_op", "_operands", "_exponent")

    def __init__(self, graph, id, data, op=Op.NONE, operands=(), exponent=None, label=""):
        self.graph = graph
        self.id = id
        self.label = label
        self._data = float(data)
        self._grad = 0.0
        self._op = op
        self._operands = tuple(operands)
        self._exponent = exponent

    @property
    def data(self):
        return self._data

    @property
    def grad(self):
        return self._grad

    @property
    def op(self):
        return self._op

    @property
    def exponent(self):
        return self._exponent

    @property
    def operands(self):
        return tuple(self.graph[i] for i in self._operands)

    @property
    def op_tag(self):
        if self._op is Op.POW:
            return f"**{self._exponent}"
        return self._op.value

    def is_leaf(self):
        return self._op is Op.NONE

    def __repr__(self):
        return f"Value(data={self._data:.4f}, grad={self._grad:.4f})"

    def __add__(self, other):
        return self.graph.add(self, other)

    def __radd__(self, other):
        return self.graph.add(other, self)

    def __mul__(self, other):
        return self.graph.mul(self, other)

    def __rmul__(self, other):
        return self.graph.mul(other, self)

    def __pow__(self, other):
        return self.graph.pow(self, other)

    def __neg__(self):
        return self * -1

    def __sub__(self, other):
        self.graph._check(other)
        return self + (-other)

    def __rsub__(self, other):
        self.graph._check(other)
        return other + (-self)

    def __truediv__(self, other):
        return self * (self.graph.lift(other) ** -1)

    def __rtruediv__(self, other):
        self.graph._check(other)
        return other * (self ** -1)

    def relu(self):
        return self.graph.relu(self)

    def exp(self):
        return self.graph.exp(self)

    def tanh(self):
        return self.graph.tanh(self)

    def topo_sort(self):
        return self.graph.topo_sort(self)

    def backward(self):
        self.graph.backward(self)

    def verbose_backward(self):
        return self.graph.verbose_backward(self)


def backward_rule(out, operands):
    """
    Local derivative rule for ``out``.

    Returns a list of ``(operand, delta, description)`` triples, one per
    operand in order; ``delta`` is what gets added to that operand's grad.
    Leaves produce an empty list.
    """
    g = out.grad
    op = out.op

    if op is Op.NONE:
        return []
    if op is Op.ADD:
        a, b = operands
        return [
            (a, g, f"1.0000*{g:.4f}"),
            (b, g, f"1.0000*{g:.4f}"),
        ]
    if op is Op.MUL:
        a, b = operands
        return [
            (a, b.data * g, f"{b.data:.4f}*{g:.4f}"),
            (b, a.data * g, f"{a.data:.4f}*{g:.4f}"),
        ]
    if op is Op.POW:
        (a,) = operands
        n = out.exponent
        local = n * _power(a.data, n - 1)
        return [(a, local * g, f"{n}*{a.data:.4f}**({n}-1)*{g:.4f}")]
    if op is Op.RELU:
        (a,) = operands
        step = 1.0 if out.data > 0 else 0.0
        return [(a, step * g, f"{step:.0f}*{g:.4f}")]
    if op is Op.EXP:
        (a,) = operands
        return [(a, out.data * g, f"{out.data:.4f}*{g:.4f}")]
    if op is Op.TANH:
        (a,) = operands
        t = out.data
        return [(a, (1.0 - t ** 2) * g, f"(1-{t:.4f}**2)*{g:.4f}")]
    raise ValueError(f"no backward rule for {op!r}")


class Graph:
    """Arena owning every Value of one computation; node ids index into it."""

    def __init__(self):
        self._nodes = []

    def __len__(self):
        return len(self._nodes)

    def __iter__(self):
        return iter(self._nodes)

    def __getitem__(self, id):
        return self._nodes[id]

    def __contains__(self, value):
        return isinstance(value, Value) and value.graph is self

    def __repr__(self):
        return f"Graph(nodes={len(self._nodes)})"

    def _new(self, data, op=Op.NONE, operands=(), exponent=None, label=""):
        node = Value(self, len(self._nodes), data, op, operands, exponent, label)
        self._nodes.append(node)
        return node

    def leaf(self, data, label=""):
        if isinstance(data, bool) or not isinstance(data, (int, float)):
            raise TypeError(f"leaf data must be int or float, got {type(data).__name__}")
        return self._new(data, label=label)

    def lift(self, x):
        """Return ``x`` if it is a node of this graph, else promote a number to a leaf."""
        self._check(x)
        if isinstance(x, Value):
            return x
        return self.leaf(x)

    def _check(self, x):
        if isinstance(x, Value):
            if x.graph is not self:
                raise ValueError(f"node {x.id} belongs to a different graph")
        elif isinstance(x, bool) or not isinstance(x, (int, float)):
            raise TypeError(f"operand must be a Value or a number, got {type(x).__name__}")

    def lift_all(self, *xs):
        """Lift several operands, checking all of them before any literal is promoted."""
        for x in xs:
            self._check(x)
        return [self.lift(x) for x in xs]

    def add(self, a, b):
        a, b = self.lift_all(a, b)
        return self._new(a.data + b.data, Op.ADD, (a.id, b.id))

    def mul(self, a, b):
        a, b = self.lift_all(a, b)
        return self._new(a.data * b.data, Op.MUL, (a.id, b.id))

    def pow(self, a, n):
        if isinstance(n, bool) or not isinstance(n, (int, float)):
            raise TypeError("only supporting int/float powers")
        (a,) = self.lift_all(a)
        return self._new(_power(a.data, n), Op.POW, (a.id,), exponent=n)

    def relu(self, a):
        (a,) = self.lift_all(a)
        return self._new(0.0 if a.data < 0 else a.data, Op.RELU, (a.id,))

    def exp(self, a):
        (a,) = self.lift_all(a)
        return self._new(_exp(a.data), Op.EXP, (a.id,))

    def tanh(self, a):
        (a,) = self.lift_all(a)
        return self._new(math.tanh(a.data), Op.TANH, (a.id,))

    def topo_sort(self, root):
        """Every node reachable from ``root``, each after all of its operands."""
        if not isinstance(root, Value):
            raise TypeError(f"root must be a Value, got {type(root).__name__}")
        self._check(root)
        topo = []
        visited = set()
        # graphs can be deeper than the recursion limit
        stack = [(root, False)]
        while stack:
            v, expanded = stack.pop()
            if expanded:
                topo.append(v)
                continue
            if v.id in visited:
                continue
            visited.add(v.id)
            stack.append((v, True))
            for child in reversed(v._operands):
                if child not in visited:
                    stack.append((self._nodes[child], False))
        return topo

    def _run_backward(self, root, records=None):
        topo = self.topo_sort(root)
        logger.debug("backward from node %d over %d nodes", root.id, len(topo))

        root._grad = 1.0
        for node in reversed(topo):
            updates = backward_rule(node, node.operands)
            for operand, delta, description in updates:
                operand._grad += delta
                if records is not None:
                    records.append(Contribution(node.id, operand.id, description))

    def backward(self, root):
        self._run_backward(root)

    def verbose_backward(self, root):
        records = []
        self._run_backward(root, records)
        return records

    def zero_grad(self):
        for node in self._nodes:
            node._grad = 0.0


def trace(root):
    nodes, edges = [], []
    seen_nodes, seen_edges = set(), set()

    stack = [root]
    while stack:
        v = stack.pop()
        if v.id in seen_nodes:
            continue
        seen_nodes.add(v.id)
        nodes.append(v)
        for child in v.operands:
            if (child.id, v.id) not in seen_edges:
                seen_edges.add((child.id, v.id))
                edges.append((child, v))
        stack.extend(reversed(v.operands))

    return nodes, edges


def json_float(x):
    """JSON has no inf/nan literals; non-finite floats are exported as strings."""
    if math.isnan(x):
        return "nan"
    if math.isinf(x):
        return "inf" if x > 0 else "-inf"
    return x


def get_graph_json(root):
    nodes, edges = trace(root)
    data = {
        "nodes": [],
        "edges": []
    }

    for n in nodes:
        data["nodes"].append({
            "id": str(n.id),
            "data": json_float(n.data),
            "grad": json_float(n.grad),
            "label": n.label,
            "op": n.op_tag
        })

    for n1, n2 in edges:
        data["edges"].append({"source": str(n1.id), "target": str(n2.id)})

    return data


def get_backward_json(records):
    return [
        {
            "source": str(r.source),
            "target": str(r.destination),
            "description": r.description,
        }
        for r in records
    ]
