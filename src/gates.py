from fractions import Fraction
from typing import Hashable, NamedTuple, Sequence, Union

# Gates act on opaque, hashable wire identifiers. The same four records
# describe input circuits and the circuits produced by extraction:
#   Hadamard(target)
#   Phase(angle, controls)   multiplies by e^{i pi angle} when every control is set
#   MCT(controls, target)    NOT on target controlled on every control
#   Swap(first, second)
# A Phase with no controls is a global phase, and an MCT with no controls is a NOT.

WireId = Hashable


class Hadamard(NamedTuple):
    target: WireId


class Phase(NamedTuple):
    angle: Fraction
    controls: tuple


class MCT(NamedTuple):
    controls: tuple
    target: WireId


class Swap(NamedTuple):
    first: WireId
    second: WireId


Gate = Union[Hadamard, Phase, MCT, Swap]


def h(q: WireId) -> Hadamard:
    return Hadamard(q)


def x(q: WireId) -> MCT:
    return MCT((), q)


def cnot(c: WireId, t: WireId) -> MCT:
    return MCT((c,), t)


def ccx(c1: WireId, c2: WireId, t: WireId) -> MCT:
    return MCT((c1, c2), t)


def rz(theta, q: WireId) -> Phase:
    """diag(1, e^{i pi theta}) on q"""
    return Phase(Fraction(theta) % 2, (q,))


def z(q: WireId) -> Phase:
    return rz(1, q)


def s(q: WireId) -> Phase:
    return rz(Fraction(1, 2), q)


def sdg(q: WireId) -> Phase:
    return rz(Fraction(3, 2), q)


def t(q: WireId) -> Phase:
    return rz(Fraction(1, 4), q)


def tdg(q: WireId) -> Phase:
    return rz(Fraction(7, 4), q)


def cz(c: WireId, q: WireId) -> Phase:
    return Phase(Fraction(1), (c, q))


def cs(c: WireId, q: WireId) -> Phase:
    return Phase(Fraction(1, 2), (c, q))


def swap(a: WireId, b: WireId) -> Swap:
    return Swap(a, b)


def inverse(gate: Gate) -> Gate:
    if isinstance(gate, Phase):
        return Phase(-Fraction(gate.angle) % 2, gate.controls)
    return gate


def dagger(circuit: Sequence[Gate]) -> list[Gate]:
    """Invert every gate and reverse the sequence"""
    return [inverse(g) for g in reversed(circuit)]


def gate_wires(gate: Gate) -> tuple:
    """The wires of a gate, in the order its path sum action expects them"""
    if isinstance(gate, Hadamard):
        return (gate.target,)
    if isinstance(gate, Phase):
        return tuple(gate.controls)
    if isinstance(gate, MCT):
        return tuple(gate.controls) + (gate.target,)
    return (gate.first, gate.second)


def wires(circuit: Sequence[Gate]) -> list[WireId]:
    """All wires of a circuit, by first appearance"""
    seen = {}
    for gate in circuit:
        for q in gate_wires(gate):
            seen.setdefault(q, len(seen))
    return list(seen)


# Decomposition into 1- and 2-qubit gates


class Scratch(NamedTuple):
    """A scratch wire, numbered past the real wires of the circuit"""
    index: int


class ScratchWires:
    """Scratch wires numbered from ``offset``, one per recursion depth

    Scratch wires are assumed to start in |0>. Every decomposition below
    returns them to |0>, so the wire for a given depth is shared by all gates
    of a circuit.
    """

    def __init__(self, offset: int = 0):
        self.offset = offset
        self.count = 0

    def wire(self, depth: int) -> Scratch:
        self.count = max(self.count, depth + 1)
        return Scratch(self.offset + depth)


def toffoli(a: WireId, b: WireId, c: WireId) -> list[Gate]:
    """Clifford+T circuit for the Toffoli gate with controls a, b and target c"""
    return [
        h(c),
        cnot(b, c), tdg(c),
        cnot(a, c), t(c),
        cnot(b, c), tdg(c),
        cnot(a, c), t(b), t(c),
        h(c),
        cnot(a, b), t(a), tdg(b),
        cnot(a, b),
    ]


def synthesize_mct(controls: Sequence[WireId], target: WireId, scratch: ScratchWires, depth: int = 0) -> list[Gate]:
    """Decompose a multiply-controlled NOT into NOT, CNOT and Clifford+T Toffolis

    For k > 2 controls, the conjunction of all but the first control is
    computed into the scratch wire for ``depth``, used as the second Toffoli
    control, and then uncomputed. The recursion uses the next depth.

    Args:
        controls: The control wires
        target: The target wire
        scratch: The scratch wires
        depth: The first scratch depth free for this decomposition

    Returns:
        gates: A list of Hadamard, Phase and MCT gates with at most one control
    """
    if len(controls) == 0:
        return [x(target)]
    if len(controls) == 1:
        return [cnot(controls[0], target)]
    if len(controls) == 2:
        return toffoli(controls[0], controls[1], target)

    anc = scratch.wire(depth)
    circ = synthesize_mct(controls[1:], anc, scratch, depth + 1)
    return circ + toffoli(controls[0], anc, target) + circ


def lower_circuit(circuit: Sequence[Gate]) -> list[Gate]:
    """Rewrite a circuit over 1- and 2-qubit gates

    Multiply-controlled NOTs are decomposed with :func:`synthesize_mct`, and a
    phase over k > 1 wires is applied to a scratch wire holding the
    conjunction of those wires. Scratch wires are numbered past the real wires
    and reused from gate to gate.
    """
    scratch = ScratchWires(len(wires(circuit)))
    gates = []
    for gate in circuit:
        if isinstance(gate, MCT):
            gates.extend(synthesize_mct(gate.controls, gate.target, scratch))
        elif isinstance(gate, Phase) and len(gate.controls) > 1:
            anc = scratch.wire(0)
            compute = synthesize_mct(gate.controls, anc, scratch, 1)
            gates.extend(compute + [rz(gate.angle, anc)] + compute)
        else:
            gates.append(gate)
    return gates
