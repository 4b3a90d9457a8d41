from typing import Mapping, Optional, Sequence

from gates import Gate, Hadamard, MCT, Phase, Swap, WireId, gate_wires, wires
from pathsum import Pathsum, embed, hgate, identity, mct_gate, phase_gate, swapgate, times


def gate_action(gate: Gate) -> Pathsum:
    """The path sum of a single gate, over the wires given by :func:`gates.gate_wires`"""
    if isinstance(gate, Hadamard):
        return hgate()
    if isinstance(gate, Phase):
        return phase_gate(gate.angle, len(gate.controls))
    if isinstance(gate, MCT):
        return mct_gate(len(gate.controls))
    if isinstance(gate, Swap):
        return swapgate()
    raise TypeError(f"Not a gate: {gate!r}")


def apply_gates(sop: Pathsum, circuit: Sequence[Gate], index: Mapping[WireId, int]) -> Pathsum:
    """Run ``circuit`` after ``sop``

    Args:
        sop: The path sum to extend
        circuit: A list of gates
        index: Maps wire identifiers to output wires of ``sop``

    Returns:
        sop: The composition
    """
    n = sop.out_deg
    for gate in circuit:
        qs = [index[q] for q in gate_wires(gate)]
        sop = times(sop, embed(gate_action(gate), n - len(qs), qs))
    return sop


def circuit_action(circuit: Sequence[Gate], index: Mapping[WireId, int]) -> Pathsum:
    """The path sum of a circuit over ``len(index)`` wires"""
    return apply_gates(identity(len(index)), circuit, index)


def compute_action(circuit: Sequence[Gate], wire_ids: Optional[Sequence[WireId]] = None) -> tuple[Pathsum, dict[WireId, int]]:
    """Compile a circuit to a path sum

    Args:
        circuit: A list of gates
        wire_ids: The wires of the circuit in index order. Defaults to the wires
            of ``circuit`` by first appearance.

    Returns:
        sop: The path sum of the circuit
        index: The map from wire identifiers to wire indices
    """
    if wire_ids is None:
        wire_ids = wires(circuit)
    index = {q: i for i, q in enumerate(wire_ids)}
    return circuit_action(circuit, index), index
