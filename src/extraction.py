import itertools
import logging
from collections import Counter
from dataclasses import replace
from typing import Mapping, Optional, Sequence, Union

from galois import FieldArray, GF2 as GF
import numpy as np

from circuits import apply_gates, compute_action
from config import ExtractionConfig, get_config
from errors import DimensionMismatchError, FinalizationError
from gates import Gate, Hadamard, MCT, Phase, WireId, cnot, dagger, x
from linear import synth_affine
from pathsum import Pathsum, grind, is_trivial, substitute
from polynomial import Boolean, Var, fvar, monomial_key, pvar, solve_for_x

# This file contains the extraction of unitary path sums back into circuits.
# Extraction repeatedly peels gates off the output side of the path sum until
# it is the identity. Each peeled gate G is logged as it is applied, so the
# log read backwards and inverted is a circuit for the original path sum.

logger = logging.getLogger(__name__)


class Context:
    """A bijection between wire indices 0..n-1 and wire identifiers"""

    def __init__(self, wire_ids: Sequence[WireId]):
        self.ids = dict(enumerate(wire_ids))
        self.indices = {q: i for i, q in self.ids.items()}
        if len(self.indices) != len(self.ids):
            raise ValueError("Wire identifiers must be distinct")

    @classmethod
    def from_index(cls, index: Mapping[WireId, int]) -> "Context":
        """Create a context from a map of wire identifiers to dense indices"""
        wire_ids = sorted(index, key=index.__getitem__)
        if [index[q] for q in wire_ids] != list(range(len(wire_ids))):
            raise ValueError("Wire indices must be 0..n-1")
        return cls(wire_ids)

    def __len__(self) -> int:
        return len(self.ids)

    def qref(self, i: int) -> WireId:
        return self.ids[i]

    def qidx(self, q: WireId) -> int:
        return self.indices[q]


class SynthesisSession:
    """The state threaded through one extraction

    Holds the wire context, the settings and an append-only log of the gates
    peeled off so far, in the order they were applied to the path sum.
    """

    def __init__(self, ctx: Context, config: Optional[ExtractionConfig] = None):
        self.ctx = ctx
        self.config = ExtractionConfig() if config is None else config
        self.log = []

    def emit(self, gates: Sequence[Gate]):
        self.log.extend(gates)

    def apply(self, sop: Pathsum, gates: Sequence[Gate]) -> Pathsum:
        """Log ``gates`` and run them after ``sop``"""
        self.emit(gates)
        return apply_gates(sop, gates, self.ctx.indices)


def _to_gates(ctx: Context, gates: list[tuple[int, ...]]) -> list[Gate]:
    # Index tuples from the linear synthesis to gates over wire identifiers
    return [x(ctx.qref(g[0])) if len(g) == 1 else cnot(ctx.qref(g[0]), ctx.qref(g[1])) for g in gates]


# Utilities


def ket_to_scope(ctx: Context, sop: Pathsum) -> dict[Var, WireId]:
    """Map each variable which is exactly the value of some output to that output's wire"""
    scope = {}
    for i, p in enumerate(sop.out_vals):
        v = p.as_var()
        if v is not None:
            scope[v] = ctx.qref(i)
    return scope


def reducible(sop: Pathsum, v: Var) -> bool:
    """Checks whether the phase is Boolean in ``v`` and ``v`` only occurs alone in the outputs"""
    if sop.phase_poly.quot_var(v).to_boolean() is None:
        return False
    return all(p.quot_var(v).degree() <= 0 for p in sop.out_vals)


def reducibles(sop: Pathsum) -> set[Var]:
    """Path variables which are exactly one output and occur in no other"""
    occurrences = Counter(v for p in sop.out_vals for v in p.vars())
    result = set()
    for p in sop.out_vals:
        v = p.as_var()
        if v is not None and v.is_path and occurrences[v] == 1:
            result.add(v)
    return result


def linearize(outs: Sequence[Boolean]) -> tuple[FieldArray, FieldArray]:
    """Write the outputs as an affine map over their monomials

    Each distinct non-constant monomial gets its own column, ordered by degree
    and then by variable, so lower-degree monomials are preferred as pivots.

    Returns:
        A: The len(outs)xm matrix of monomial coefficients
        b: The constant parts of the outputs
    """
    monomials = sorted({m for p in outs for m in p.terms() if m}, key=monomial_key)
    column = {m: j for j, m in enumerate(monomials)}
    A = GF.Zeros((len(outs), len(monomials)))
    b = GF.Zeros(len(outs))
    for i, p in enumerate(outs):
        for m in p.terms():
            if m:
                A[i, column[m]] = 1
            else:
                b[i] = 1
    return A, b


def change_frame(sop: Pathsum) -> tuple[list[tuple[Var, Boolean]], Pathsum]:
    """Change variables so that outputs become single variables where possible

    For each output p = v + q with v occurring linearly, substitute v <- t + q
    for a fresh free variable t, so that the output becomes t. The largest such
    v is chosen. Outputs with no such v, e.g. x0 * x1 or x0 + x0 * x1, are left
    unchanged: substituting for a non-linear monomial is not an invertible
    change of variables, and the phase terms over those outputs are handled
    by later passes instead.

    Returns:
        frame: The substitutions (t, p), in the order they were made
        sop: The path sum in the new frame
    """
    frame = []
    for i in range(sop.out_deg):
        p = sop.out_vals[i]
        nonconstant = [m for m in p.terms() if m]
        if not nonconstant:
            continue
        if len(nonconstant) == 1 and len(nonconstant[0]) == 1:
            continue
        # Don't solve for a variable another output already is
        taken = {q.as_var() for j, q in enumerate(sop.out_vals) if j != i}
        candidates = [v for v, _ in solve_for_x(p) if v not in taken]
        if not candidates:
            continue
        v = candidates[-1]
        t = fvar(f"#frame{i}")
        sop = substitute(sop, v, Boolean.var(t) + p + Boolean.var(v))
        frame.append((t, p))
    return frame, sop


def revert_frame(frame: list[tuple[Var, Boolean]], sop: Pathsum) -> Pathsum:
    for t, p in reversed(frame):
        sop = substitute(sop, t, p)
    return sop


def find_substitutions(xs: Sequence[Var], sop: Pathsum, max_size: Optional[int] = None) -> Optional[tuple[Var, tuple[Var, ...]]]:
    """Find a simultaneous substitution z_i <- z_i + y making y reducible

    Tries every y in ``xs`` against every set of other path variables, smallest
    sets first and in lexicographic order. Exponential in the number of path
    variables.

    Args:
        xs: The candidate path variables y
        sop: A path sum
        max_size: The largest substitution set to try. Defaults to len(xs) - 1.

    Returns:
        The pair (y, (z_1, ..., z_k)), or None if no substitution was found
    """
    paths = [pvar(i) for i in range(sop.path_vars)]
    largest = len(xs) - 1
    if max_size is not None:
        largest = min(largest, max_size)
    for size in range(1, largest + 1):
        for y in xs:
            for zs in itertools.combinations([z for z in paths if z != y], size):
                candidate = sop
                for z in zs:
                    candidate = substitute(candidate, z, Boolean.var(z) + Boolean.var(y))
                if reducible(candidate, y):
                    return y, zs
    return None


# Passes


def normalize(session: SynthesisSession, sop: Pathsum) -> Pathsum:
    return grind(sop)


def affine_simplifications(session: SynthesisSession, sop: Pathsum) -> Pathsum:
    """Reduce the outputs, read as an affine map over their monomials, with CNOT and NOT gates"""
    A, b = linearize(sop.out_vals)
    gates = _to_gates(session.ctx, synth_affine(A, b))
    if gates:
        logger.debug("affine simplification: %d gates", len(gates))
    return session.apply(sop, gates)


def phase_simplifications(session: SynthesisSession, sop: Pathsum) -> Pathsum:
    """Remove phase terms over output values with (multiply-controlled) phase gates

    The phase is rewritten in a local frame where the outputs are variables,
    and every term over those variables is cancelled by a phase gate on the
    corresponding wires.
    """
    frame, local = change_frame(sop)
    scope = ket_to_scope(session.ctx, local)
    poly = local.phase_poly.collect(scope)
    gates = [Phase(-a % 2, tuple(scope[v] for v in sorted(m))) for a, m in poly.terms()]
    if gates:
        logger.debug("phase simplification: %d gates", len(gates))
    session.emit(gates)
    local = replace(local, phase_poly=local.phase_poly - poly)
    return revert_frame(frame, local)


def nonlinear_simplifications(session: SynthesisSession, sop: Pathsum) -> Pathsum:
    """Remove non-linear output terms over output values with multiply-controlled NOTs"""
    while True:
        scope = ket_to_scope(session.ctx, sop)
        outs = list(sop.out_vals)
        gates = []
        for i, p in enumerate(sop.out_vals):
            for m in p.terms():
                if len(m) <= 1 or not m.issubset(scope):
                    continue
                gates.append(MCT(tuple(scope[v] for v in sorted(m)), session.ctx.qref(i)))
                outs[i] = outs[i] + Boolean.monomial(m)
        if not gates:
            return sop
        logger.debug("nonlinear simplification: %d gates", len(gates))
        session.emit(gates)
        sop = replace(sop, out_vals=tuple(outs))


def finalize(session: SynthesisSession, sop: Pathsum) -> Pathsum:
    """Synthesize the remaining affine permutation |x> -> |Ax + b>

    Raises:
        FinalizationError: If an output is non-linear, or mentions a path or
            free variable, or if the map is not invertible
    """
    n = sop.in_deg
    if sop.out_deg != n:
        raise FinalizationError("Attempting to finalize a non-square path sum")
    A = GF.Zeros((n, n))
    b = GF.Zeros(n)
    for i, p in enumerate(sop.out_vals):
        if p.degree() > 1:
            raise FinalizationError("Attempting to finalize non-linear path sum", repr(p))
        for v in p.vars():
            if v.is_path:
                raise FinalizationError("Attempting to finalize a proper path sum")
            if v.is_free:
                raise FinalizationError("Attempting to extract a path sum with free variables")
            A[i, v.key] = 1
        if p.constant:
            b[i] = 1
    if np.linalg.matrix_rank(A) != n:
        raise FinalizationError("Attempting to finalize a singular affine map")
    gates = _to_gates(session.ctx, synth_affine(A, b, permute=True))
    return session.apply(sop, gates)


def strength_reduction(session: SynthesisSession, sop: Pathsum) -> Pathsum:
    """Change path variables so that some in-scope path variable becomes reducible

    The substitution z <- z + y is a change of summation variables and does
    not change the operator. Where z is the value of a wire, the wire then
    holds z + y and a CNOT from y's wire restores it.
    """
    scope = ket_to_scope(session.ctx, sop)
    in_scope = sorted(v for v in scope if v.is_path)
    found = find_substitutions(in_scope, sop, session.config.max_substitution_size)
    if found is None:
        return sop
    y, zs = found
    logger.debug("strength reduction: %r <- %r + %r", zs, zs, y)
    for z in zs:
        sop = substitute(sop, z, Boolean.var(z) + Boolean.var(y))
        if z in scope:
            sop = session.apply(sop, [cnot(scope[y], scope[z])])
    return sop


def h_layer(session: SynthesisSession, sop: Pathsum) -> Optional[Pathsum]:
    """Apply a Hadamard to the first wire holding a reducible path variable, if any"""
    candidates = reducibles(sop)
    for i, p in enumerate(sop.out_vals):
        v = p.as_var()
        if v not in candidates:
            continue
        if sop.phase_poly.quot_var(v).to_boolean() is None:
            continue
        return session.apply(sop, [Hadamard(session.ctx.qref(i))])
    return None


# Extraction


def synthesis_pass(session: SynthesisSession, sop: Pathsum) -> Pathsum:
    sop = affine_simplifications(session, sop)
    sop = phase_simplifications(session, sop)
    sop = nonlinear_simplifications(session, sop)
    # Non-linear simplification can expose new phase terms
    return phase_simplifications(session, sop)


def reduce_paths(session: SynthesisSession, sop: Pathsum) -> Pathsum:
    result = h_layer(session, sop)
    if result is None and session.config.strength_reduction:
        sop = strength_reduction(session, sop)
        result = h_layer(session, sop)
    return normalize(session, sop if result is None else result)


def synthesize_frontier(session: SynthesisSession, sop: Pathsum) -> Pathsum:
    """A single pass of the synthesis algorithm"""
    sop = normalize(session, sop)
    if sop.path_vars == 0:
        return finalize(session, synthesis_pass(session, sop))
    return reduce_paths(session, synthesis_pass(session, sop))


def extract_unitary(ctx: Union[Context, Mapping[WireId, int]], sop: Pathsum, config: Optional[ExtractionConfig] = None) -> Optional[list[Gate]]:
    """Extract a circuit from a unitary path sum

    Args:
        ctx: The wires of the path sum, as a :class:`Context` or a map from
            wire identifiers to indices
        sop: A square path sum over those wires
        config: Extraction settings. Defaults to :func:`config.get_config`.

    Returns:
        circuit: A list of gates implementing ``sop``, in execution order, or
            None if extraction did not reach the identity
    """
    if not isinstance(ctx, Context):
        ctx = Context.from_index(ctx)
    if sop.in_deg != sop.out_deg or sop.out_deg != len(ctx):
        raise DimensionMismatchError(
            f"Cannot extract a {sop.in_deg}-to-{sop.out_deg} path sum over {len(ctx)} wires"
        )
    if config is None:
        config = get_config()
    session = SynthesisSession(ctx, config)

    passes = 0
    while True:
        result = synthesize_frontier(session, sop)
        passes += 1
        logger.debug("pass %d: %d -> %d path variables", passes, sop.path_vars, result.path_vars)
        if result.path_vars >= sop.path_vars:
            break
        if config.max_passes is not None and passes >= config.max_passes:
            logger.warning("extraction stopped after %d passes", passes)
            return None
        sop = result

    if not is_trivial(result):
        logger.info("extraction failed after %d passes with %d path variables", passes, result.path_vars)
        return None
    logger.info("extracted %d gates in %d passes", len(session.log), passes)
    return dagger(session.log)


def resynthesize_circuit(circuit: Sequence[Gate], wire_ids: Optional[Sequence[WireId]] = None, config: Optional[ExtractionConfig] = None) -> Optional[list[Gate]]:
    """Compile a circuit to a path sum and extract it again

    Returns:
        circuit: An equivalent circuit, or None if extraction failed
    """
    sop, index = compute_action(circuit, wire_ids)
    return extract_unitary(Context.from_index(index), sop, config)
