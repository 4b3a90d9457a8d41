from fractions import Fraction

import numpy as np

from circuits import compute_action
from gates import (
    MCT, Phase, Scratch, ScratchWires, ccx, cnot, dagger, h, lower_circuit, s, synthesize_mct, t,
    tdg, toffoli, wires, x,
)
from pathsum import identity, ket, tensor, to_matrix


def circuit_matrix(circuit, wire_ids) -> np.ndarray:
    sop, _ = compute_action(circuit, wire_ids)
    return to_matrix(sop)


def clean_scratch_matrix(circuit, wire_ids, scratch) -> np.ndarray:
    """The matrix of a circuit with every scratch wire prepared and postselected in |0>"""
    sop, _ = compute_action(circuit, list(wire_ids) + list(scratch))
    prepared = tensor(identity(len(wire_ids)), ket([0] * len(scratch))) >> sop
    # Scratch wires come last, so their all-zero states are every 2^k-th row
    return to_matrix(prepared)[:: 2 ** len(scratch), :]


def test_dagger():
    assert dagger([t("a"), h("a"), cnot("a", "b")]) == [cnot("a", "b"), h("a"), tdg("a")]
    assert dagger([Phase(Fraction(1, 2), ("a", "b"))]) == [Phase(Fraction(3, 2), ("a", "b"))]


def test_wires():
    assert wires([h("b"), cnot("a", "b"), ccx("c", "a", "d")]) == ["b", "a", "c", "d"]
    assert wires([Phase(Fraction(1), ())]) == []


def test_scratch_allocation():
    scratch = ScratchWires(3)
    assert scratch.wire(0) == Scratch(3)
    assert scratch.wire(1) == Scratch(4)
    assert scratch.wire(0) == Scratch(3)
    assert scratch.count == 2


def test_toffoli():
    qs = ["a", "b", "c"]
    assert np.allclose(circuit_matrix(toffoli("a", "b", "c"), qs), circuit_matrix([ccx("a", "b", "c")], qs))


def test_small_mct():
    scratch = ScratchWires(2)
    assert synthesize_mct([], "a", scratch) == [x("a")]
    assert synthesize_mct(["a"], "b", scratch) == [cnot("a", "b")]
    assert synthesize_mct(["a", "b"], "c", scratch) == toffoli("a", "b", "c")
    assert scratch.count == 0


def test_mct_decomposition():
    qs = ["a", "b", "c", "d"]
    scratch = ScratchWires(len(qs))
    circuit = synthesize_mct(["a", "b", "c"], "d", scratch)
    assert scratch.count == 1
    assert all(len(g.controls) <= 1 for g in circuit if isinstance(g, MCT))
    M = clean_scratch_matrix(circuit, qs, [Scratch(4)])
    expected = circuit_matrix([MCT(("a", "b", "c"), "d")], qs)
    assert np.allclose(M, expected)


def test_lower_circuit():
    circuit = [
        h("a"),
        MCT(("a", "b", "c"), "d"),
        Phase(Fraction(1, 4), ("a", "c", "d")),
        s("b"),
    ]
    lowered = lower_circuit(circuit)
    for g in lowered:
        if isinstance(g, MCT):
            assert len(g.controls) <= 1
        if isinstance(g, Phase):
            assert len(g.controls) <= 1
    qs = wires(circuit)
    scratch = sorted(q for q in wires(lowered) if isinstance(q, Scratch))
    assert [q.index for q in scratch] == [4, 5]
    M = clean_scratch_matrix(lowered, qs, scratch)
    expected = circuit_matrix(circuit, qs)
    assert np.allclose(M, expected)


def test_lower_circuit_reuses_scratch():
    circuit = [
        MCT(("a", "b", "c"), "d"),
        MCT(("b", "c", "d"), "a"),
        MCT(("c", "d", "a"), "b"),
        MCT(("d", "a", "b"), "c"),
        MCT(("a", "b", "c"), "d"),
    ]
    lowered = lower_circuit(circuit)
    qs = wires(circuit)
    scratch = sorted(q for q in wires(lowered) if isinstance(q, Scratch))
    assert scratch == [Scratch(4)]
    M = clean_scratch_matrix(lowered, qs, scratch)
    expected = circuit_matrix(circuit, qs)
    assert np.allclose(M, expected)
