import itertools
import logging
from dataclasses import dataclass, replace
from fractions import Fraction
from typing import Callable, Iterable, Iterator, NamedTuple, Optional, Sequence, Union

import numpy as np

from errors import DimensionMismatchError, PathsumError, UnbalancedSumError
from polynomial import Boolean, PseudoBoolean, Var, fvar, ivar, lift, pvar, solve_for_x

# This file contains the balanced path-sum representation of linear operators
# together with its normalization procedure. The representation and the
# rewrite rules follow
# > Amy, M., 2018. Towards large-scale functional verification of universal
# > quantum circuits. QPL 2018.
# > [DOI: 10.4204/EPTCS.287.1](https://doi.org/10.4204/EPTCS.287.1)

logger = logging.getLogger(__name__)

BooleanLike = Union[Boolean, int, str]


@dataclass(frozen=True)
class Pathsum:
    """A path sum

    Represents the operator

        |x> -> 1/sqrt(2)^sde * sum_{y in Z_2^path_vars} e^{i pi phase_poly(x, y)} |out_vals(x, y)>

    where x ranges over the ``in_deg`` input variables. Path variables always
    have the contiguous indices 0..path_vars-1. Values are immutable and
    compared structurally.
    """
    sde: int
    in_deg: int
    out_deg: int
    path_vars: int
    phase_poly: PseudoBoolean
    out_vals: tuple[Boolean, ...]

    def __post_init__(self):
        object.__setattr__(self, "out_vals", tuple(self.out_vals))
        if len(self.out_vals) != self.out_deg:
            raise DimensionMismatchError(
                f"Path sum has out degree {self.out_deg} but {len(self.out_vals)} outputs"
            )

    def __str__(self) -> str:
        inputs = "".join(f"|{ivar(i)}>" for i in range(self.in_deg))
        paths = "".join(repr(pvar(i)) for i in range(self.path_vars))
        outputs = "".join(f"|{p}>" for p in self.out_vals)
        return f"{inputs} -> 1/sqrt2^{self.sde} sum[{paths}] e^(i pi ({self.phase_poly})) {outputs}"

    def __xor__(self, other: "Pathsum") -> "Pathsum":
        return tensor(self, other)

    def __rshift__(self, other: "Pathsum") -> "Pathsum":
        return times(self, other)

    def __mul__(self, other: "Pathsum") -> "Pathsum":
        return times(other, self)

    def __add__(self, other: "Pathsum") -> "Pathsum":
        return plus(self, other)

    def __neg__(self) -> "Pathsum":
        return negate(self)


def _as_boolean(x: BooleanLike) -> Boolean:
    if isinstance(x, Boolean):
        return x
    if isinstance(x, str):
        return Boolean.var(fvar(x))
    return Boolean.const(x)


def _shift(inputs: int = 0, paths: int = 0) -> Callable[[Var], Var]:
    def go(v: Var) -> Var:
        if v.is_input:
            return ivar(v.key + inputs)
        if v.is_path:
            return pvar(v.key + paths)
        return v
    return go


def _drop_path(i: int) -> Callable[[Var], Var]:
    # Renumbers path variables above i down by one
    def go(v: Var) -> Var:
        if v.is_path and v.key > i:
            return pvar(v.key - 1)
        return v
    return go


def internal_paths(sop: Pathsum) -> list[Var]:
    """The path variables which do not occur in any output"""
    out_vars = set().union(*(p.vars() for p in sop.out_vals))
    return [pvar(i) for i in range(sop.path_vars) if pvar(i) not in out_vars]


def free_vars(sop: Pathsum) -> list[str]:
    vs = sop.phase_poly.vars().union(*(p.vars() for p in sop.out_vals))
    return sorted(v.key for v in vs if v.is_free)


def is_trivial(sop: Pathsum) -> bool:
    return sop == identity(sop.in_deg)


# Constructors


def identity(n: int) -> Pathsum:
    return Pathsum(0, n, n, 0, PseudoBoolean(), [Boolean.var(ivar(i)) for i in range(n)])


def ket(xs: Sequence[BooleanLike]) -> Pathsum:
    """A (symbolic) state. Strings denote free variables."""
    return Pathsum(0, 0, len(xs), 0, PseudoBoolean(), [_as_boolean(x) for x in xs])


def initialize(b: int) -> Pathsum:
    return ket([b])


def bra(xs: Sequence[BooleanLike]) -> Pathsum:
    """A (symbolic) state destructor, the dagger of :func:`ket`"""
    m = len(xs)
    poly = PseudoBoolean()
    for i, x in enumerate(xs):
        poly = poly + lift(Boolean.var(pvar(i)) * (Boolean.var(ivar(i)) + _as_boolean(x)))
    return Pathsum(2 * m, m, 0, m, poly, [])


def postselect(b: int) -> Pathsum:
    return bra([b])


def unstate_alt(xs: Sequence[BooleanLike]) -> Pathsum:
    """A state destructor like :func:`bra` with a single path variable

    Sums y * (1 + prod_i (1 + x_i + v_i)) over one path, trading the m path
    variables of :func:`bra` for a degree m phase.
    """
    p = Boolean.const(1)
    for i, x in enumerate(xs):
        p = p * (1 + _as_boolean(x) + Boolean.var(ivar(i)))
    return Pathsum(2, len(xs), 0, 1, lift(Boolean.var(pvar(0)) * (1 + p)), [])


def _selection(xs: Sequence[BooleanLike]) -> tuple[int, int, PseudoBoolean]:
    # Phase sum_i y_i (x_i + xs_i), with the free variables of xs as paths m..m+n-1
    xs = [_as_boolean(x) for x in xs]
    m = len(xs)
    fv = sorted(set().union(*(x.vars() for x in xs)))
    sub = {v: pvar(m + i) for i, v in enumerate(fv)}
    poly = PseudoBoolean()
    for i, x in enumerate(xs):
        selected = x.rename(lambda v: sub.get(v, v))
        poly = poly + lift(Boolean.var(pvar(i)) * (Boolean.var(ivar(i)) + selected))
    return m, len(fv), poly


def unsuper(xs: Sequence[BooleanLike]) -> Pathsum:
    """Project onto the uniform superposition over the values of ``xs``, the dagger of :func:`superposition`"""
    m, n, poly = _selection(xs)
    return Pathsum(2 * m + n, m, 0, m + n, poly, [])


def uncompute(xs: Sequence[BooleanLike]) -> Pathsum:
    """Invert a classical map, the dagger of :func:`compute`

    Maps |xs(v)> back to |v> for each assignment v of the free variables.
    """
    m, n, poly = _selection(xs)
    return Pathsum(2 * m, m, n, m + n, poly, [Boolean.var(pvar(m + i)) for i in range(n)])


def superposition(xs: Sequence[Boolean]) -> Pathsum:
    """A uniform superposition over the values of the free variables of ``xs``"""
    fv = sorted(set().union(*(_as_boolean(x).vars() for x in xs)))
    sub = {v: pvar(i) for i, v in enumerate(fv)}
    outs = [_as_boolean(x).rename(lambda v: sub.get(v, v)) for x in xs]
    return Pathsum(len(fv), 0, len(xs), len(fv), PseudoBoolean(), outs)


def compute(xs: Sequence[Boolean]) -> Pathsum:
    """The classical map from the free variables of ``xs`` to ``xs``"""
    fv = sorted(set().union(*(_as_boolean(x).vars() for x in xs)))
    sub = {v: ivar(i) for i, v in enumerate(fv)}
    outs = [_as_boolean(x).rename(lambda v: sub.get(v, v)) for x in xs]
    return Pathsum(0, len(fv), len(xs), 0, PseudoBoolean(), outs)


def disconnect(n: int) -> Pathsum:
    """Maps every basis state to the maximally mixed state. Not unitary."""
    return Pathsum(n, n, n, n, PseudoBoolean(), [Boolean.var(pvar(i)) for i in range(n)])


def fresh() -> Pathsum:
    return Pathsum(0, 0, 1, 0, PseudoBoolean(), [Boolean()])


def root2() -> Pathsum:
    return Pathsum(0, 0, 0, 1, PseudoBoolean.const(Fraction(1, 4)) + PseudoBoolean.var(pvar(0), Fraction(3, 2)), [])


def iunit() -> Pathsum:
    return Pathsum(0, 0, 0, 0, PseudoBoolean.const(Fraction(1, 2)), [])


def omega() -> Pathsum:
    return Pathsum(0, 0, 0, 0, PseudoBoolean.const(Fraction(1, 4)), [])


def _diagonal(angle) -> Pathsum:
    return Pathsum(0, 1, 1, 0, PseudoBoolean.var(ivar(0), angle), [Boolean.var(ivar(0))])


def xgate() -> Pathsum:
    return Pathsum(0, 1, 1, 0, PseudoBoolean(), [1 + Boolean.var(ivar(0))])


def ygate() -> Pathsum:
    phase = PseudoBoolean.const(Fraction(1, 2)) + PseudoBoolean.var(ivar(0))
    return Pathsum(0, 1, 1, 0, phase, [1 + Boolean.var(ivar(0))])


def zgate() -> Pathsum:
    return _diagonal(1)


def sgate() -> Pathsum:
    return _diagonal(Fraction(1, 2))


def sdggate() -> Pathsum:
    return _diagonal(Fraction(3, 2))


def tgate() -> Pathsum:
    return _diagonal(Fraction(1, 4))


def tdggate() -> Pathsum:
    return _diagonal(Fraction(7, 4))


def rkgate(k: int) -> Pathsum:
    """diag(1, e^{i pi / 2^k})"""
    return _diagonal(Fraction(1, 2 ** k))


def rzgate(theta: Fraction) -> Pathsum:
    """diag(1, e^{i pi theta})"""
    return _diagonal(theta)


def hgate() -> Pathsum:
    return Pathsum(1, 1, 1, 1, PseudoBoolean.monomial([ivar(0), pvar(0)]), [Boolean.var(pvar(0))])


def cxgate() -> Pathsum:
    x0, x1 = Boolean.var(ivar(0)), Boolean.var(ivar(1))
    return Pathsum(0, 2, 2, 0, PseudoBoolean(), [x0, x0 + x1])


def ccxgate() -> Pathsum:
    return mct_gate(2)


def swapgate() -> Pathsum:
    return Pathsum(0, 2, 2, 0, PseudoBoolean(), [Boolean.var(ivar(1)), Boolean.var(ivar(0))])


def phase_gate(angle: Fraction, k: int) -> Pathsum:
    """Multiply the phase by e^{i pi angle} when all k wires are set"""
    xs = [ivar(i) for i in range(k)]
    return Pathsum(0, k, k, 0, PseudoBoolean.monomial(xs, angle), [Boolean.var(x) for x in xs])


def mct_gate(k: int) -> Pathsum:
    """A NOT on wire k controlled on wires 0..k-1"""
    xs = [Boolean.var(ivar(i)) for i in range(k + 1)]
    control = Boolean.monomial(ivar(i) for i in range(k))
    return Pathsum(0, k + 1, k + 1, 0, PseudoBoolean(), xs[:k] + [xs[k] + control])


# Binding


def bind(names: Iterable[str], sop: Pathsum) -> Pathsum:
    """Turn the given free variables into new inputs, in order"""
    for name in names:
        v = Boolean.var(ivar(sop.in_deg))
        sop = Pathsum(
            sop.sde,
            sop.in_deg + 1,
            sop.out_deg,
            sop.path_vars,
            sop.phase_poly.subst(fvar(name), v),
            [p.subst(fvar(name), v) for p in sop.out_vals],
        )
    return sop


def close(sop: Pathsum) -> Pathsum:
    return bind(free_vars(sop), sop)


def substitute(sop: Pathsum, v: Var, p: Boolean) -> Pathsum:
    """Replace ``v`` by ``p`` throughout. Does not renumber path variables."""
    return replace(
        sop,
        phase_poly=sop.phase_poly.subst(v, p),
        out_vals=tuple(q.subst(v, p) for q in sop.out_vals),
    )


# Operators


def extend(sop: Pathsum, n: int, embedding: Callable[[int], int]) -> Pathsum:
    """Extend a square path sum with n wires

    Args:
        sop: A square path sum
        n: The number of wires to add
        embedding: Maps the wires of ``sop`` to wires of the extended path sum

    Returns:
        sop: The path sum acting as ``sop`` on the embedded wires and as the
            identity on the rest
    """
    if n < 0:
        raise DimensionMismatchError("Cannot embed path sum in smaller space")
    if sop.in_deg != sop.out_deg:
        raise DimensionMismatchError("Can only extend square path sums")

    def sub(v: Var) -> Var:
        return ivar(embedding(v.key)) if v.is_input else v

    width = sop.out_deg + n
    placed = {embedding(i): p.rename(sub) for i, p in enumerate(sop.out_vals)}
    outs = [placed.get(i, Boolean.var(ivar(i))) for i in range(width)]
    return Pathsum(sop.sde, width, width, sop.path_vars, sop.phase_poly.rename(sub), outs)


def embed(sop: Pathsum, n: int, wires: Sequence[int]) -> Pathsum:
    """Extend ``sop`` by n wires, placing its i-th wire at ``wires[i]``"""
    return extend(sop, n, lambda i: wires[i])


def tensor(sop: Pathsum, sop2: Pathsum) -> Pathsum:
    """Parallel composition"""
    shift = _shift(sop.in_deg, sop.path_vars)
    return Pathsum(
        sop.sde + sop2.sde,
        sop.in_deg + sop2.in_deg,
        sop.out_deg + sop2.out_deg,
        sop.path_vars + sop2.path_vars,
        sop.phase_poly + sop2.phase_poly.rename(shift),
        sop.out_vals + tuple(p.rename(shift) for p in sop2.out_vals),
    )


def times(sop: Pathsum, sop2: Pathsum) -> Pathsum:
    """Sequential composition: run ``sop`` and then ``sop2``"""
    if sop.out_deg != sop2.in_deg:
        raise DimensionMismatchError(
            f"Incompatible path sum dimensions: out degree {sop.out_deg}, in degree {sop2.in_deg}"
        )
    shift = _shift(0, sop.path_vars)
    sub = {ivar(i): p for i, p in enumerate(sop.out_vals)}
    return Pathsum(
        sop.sde + sop2.sde,
        sop.in_deg,
        sop2.out_deg,
        sop.path_vars + sop2.path_vars,
        sop.phase_poly + sop2.phase_poly.rename(shift).subst_many(sub),
        [p.rename(shift).subst_many(sub) for p in sop2.out_vals],
    )


def plus(sop: Pathsum, sop2: Pathsum) -> Pathsum:
    """Sum of two path sums, branching on a fresh selector path variable

    Raises:
        DimensionMismatchError: If the degrees differ
        UnbalancedSumError: If the two branches carry different normalization
    """
    if sop.in_deg != sop2.in_deg or sop.out_deg != sop2.out_deg:
        raise DimensionMismatchError("Incompatible path sum dimensions")
    if sop.sde + 2 * sop2.path_vars != sop2.sde + 2 * sop.path_vars:
        raise UnbalancedSumError(
            f"Unbalanced sum: sde {sop.sde} with {sop.path_vars} paths,",
            f"sde {sop2.sde} with {sop2.path_vars} paths",
        )
    path_vars = sop.path_vars + sop2.path_vars + 1
    y = Boolean.var(pvar(path_vars - 1))
    shift = _shift(0, sop.path_vars)
    phase = sop.phase_poly.mul_boolean(y) + sop2.phase_poly.rename(shift).mul_boolean(1 + y)
    outs = [b.rename(shift) + y * (a + b.rename(shift)) for a, b in zip(sop.out_vals, sop2.out_vals)]
    return Pathsum(sop.sde + 2 * sop2.path_vars, sop.in_deg, sop.out_deg, path_vars, phase, outs)


def renormalize(k: int, sop: Pathsum) -> Pathsum:
    return replace(sop, sde=sop.sde + k)


def negate(sop: Pathsum) -> Pathsum:
    return replace(sop, phase_poly=sop.phase_poly + 1)


def drop_phase_constant(sop: Pathsum) -> Pathsum:
    return replace(sop, phase_poly=sop.phase_poly.drop_constant())


# Reduction rules. Matching and application are kept apart: the *_instances
# generators enumerate every match in canonical order, match_* returns the
# first one or None, and apply_* performs the rewrite without re-checking it.


class Elim(NamedTuple):
    var: Var


class HHSolved(NamedTuple):
    var: Var
    solved: Var
    poly: Boolean


class Omega(NamedTuple):
    var: Var
    poly: Boolean


def elim_instances(sop: Pathsum) -> Iterator[Elim]:
    """Internal path variables which do not occur in the phase"""
    phase_vars = sop.phase_poly.vars()
    for v in internal_paths(sop):
        if v not in phase_vars:
            yield Elim(v)


def hh_instances(sop: Pathsum) -> Iterator[tuple[Var, Boolean]]:
    """Internal path variables y with P = y * p + R for Boolean p"""
    for v in internal_paths(sop):
        p = sop.phase_poly.quot_var(v).to_boolean()
        if p is not None:
            yield v, p


def hh_solved_instances(sop: Pathsum) -> Iterator[HHSolved]:
    for v, p in hh_instances(sop):
        for z, q in solve_for_x(p):
            if z.is_path:
                yield HHSolved(v, z, q)


def hh_linear_instances(sop: Pathsum) -> Iterator[HHSolved]:
    for v, p in hh_instances(sop):
        if p.degree() > 1:
            continue
        for z, q in solve_for_x(p):
            if z.is_path:
                yield HHSolved(v, z, q)


def omega_instances(sop: Pathsum) -> Iterator[Omega]:
    """Internal path variables y with P = y * (p - 1/2) + R for Boolean p"""
    for v in internal_paths(sop):
        p = (Fraction(1, 2) + sop.phase_poly.quot_var(v)).to_boolean()
        if p is not None:
            yield Omega(v, p)


def match_elim(sop: Pathsum) -> Optional[Elim]:
    return next(elim_instances(sop), None)


def match_hh_solved(sop: Pathsum) -> Optional[HHSolved]:
    return next(hh_solved_instances(sop), None)


def match_hh_linear(sop: Pathsum) -> Optional[HHSolved]:
    return next(hh_linear_instances(sop), None)


def match_omega(sop: Pathsum) -> Optional[Omega]:
    return next(omega_instances(sop), None)


def apply_elim(sop: Pathsum, match: Elim) -> Pathsum:
    """sum_y f = 2 f when y occurs nowhere in f"""
    shift = _drop_path(match.var.key)
    return Pathsum(
        sop.sde - 2,
        sop.in_deg,
        sop.out_deg,
        sop.path_vars - 1,
        sop.phase_poly.rename(shift),
        [p.rename(shift) for p in sop.out_vals],
    )


def apply_hh(sop: Pathsum, match: HHSolved) -> Pathsum:
    """sum_y (-1)^{y (z + q)} f(z) = 2 f(q), dropping y

    The solved variable z is left unused and is removed by a later Elim,
    which accounts for the factor of 2.
    """
    y, z, q = match
    shift = _drop_path(y.key)
    return Pathsum(
        sop.sde,
        sop.in_deg,
        sop.out_deg,
        sop.path_vars - 1,
        sop.phase_poly.rem_var(y).subst(z, q).rename(shift),
        [p.subst(z, q).rename(shift) for p in sop.out_vals],
    )


def apply_omega(sop: Pathsum, match: Omega) -> Pathsum:
    """sum_y e^{i pi y (p - 1/2)} = sqrt(2) e^{i pi (p/2 - 1/4)}"""
    y, p = match
    shift = _drop_path(y.key)
    phase = sop.phase_poly.rem_var(y) + Fraction(7, 4) + lift(p, Fraction(1, 2))
    return Pathsum(
        sop.sde - 1,
        sop.in_deg,
        sop.out_deg,
        sop.path_vars - 1,
        phase.rename(shift),
        [q.rename(shift) for q in sop.out_vals],
    )


def _rewrite(sop: Pathsum, hh_match: Callable[[Pathsum], Optional[HHSolved]]) -> Optional[Pathsum]:
    # Rule priority: Elim, then HH, then Omega
    match = match_elim(sop)
    if match is not None:
        return apply_elim(sop, match)
    match = hh_match(sop)
    if match is not None:
        return apply_hh(sop, match)
    match = match_omega(sop)
    if match is not None:
        return apply_omega(sop, match)
    return None


def grind_step(sop: Pathsum) -> Pathsum:
    """A single step of :func:`grind`"""
    result = _rewrite(sop, match_hh_solved)
    return sop if result is None else result


def simplify(sop: Pathsum) -> Pathsum:
    """A single rewrite using the linear variant of HH, without cascading"""
    result = _rewrite(sop, match_hh_linear)
    return sop if result is None else result


def grind(sop: Pathsum) -> Pathsum:
    """Rewrite with Elim, HH and Omega until no rule applies

    Every rewrite removes a path variable, so this terminates after at most
    ``sop.path_vars`` steps.
    """
    steps = 0
    while True:
        result = _rewrite(sop, match_hh_solved)
        if result is None:
            break
        sop = result
        steps += 1
    if steps:
        logger.debug("grind: %d rewrites, %d path variables remain", steps, sop.path_vars)
    return sop


# Simulation. Exponential in the number of path variables; for validation only.


def _simulate(sop: Pathsum) -> dict[tuple[int, ...], complex]:
    sop = grind(sop)
    if sop.in_deg != 0:
        raise DimensionMismatchError("Can only simulate closed path sums")
    if free_vars(sop):
        raise PathsumError("Cannot simulate a path sum with free variables")
    if sop.path_vars == 0:
        magnitude = np.sqrt(2.0) ** (-sop.sde)
        phase = float(sop.phase_poly.constant)
        out = tuple(p.constant for p in sop.out_vals)
        return {out: magnitude * np.exp(1j * np.pi * phase)}

    v = pvar(sop.path_vars - 1)
    result = {}
    for b in (0, 1):
        value = Boolean.const(b)
        branch = Pathsum(
            sop.sde,
            0,
            sop.out_deg,
            sop.path_vars - 1,
            sop.phase_poly.subst(v, value),
            [p.subst(v, value) for p in sop.out_vals],
        )
        for out, amp in _simulate(branch).items():
            result[out] = result.get(out, 0) + amp
    return result


def simulate(sop: Pathsum, xs: Sequence[int]) -> dict[tuple[int, ...], complex]:
    """Compute the output state of ``sop`` on the basis state |xs>

    Returns:
        state: A map from output basis states to amplitudes
    """
    if len(xs) != sop.in_deg:
        raise DimensionMismatchError(f"Expected {sop.in_deg} input bits, got {len(xs)}")
    return _simulate(times(ket(list(xs)), sop))


def amplitude(os: Sequence[int], sop: Pathsum, xs: Sequence[int]) -> complex:
    """The amplitude <os|sop|xs>"""
    return simulate(times(sop, bra(list(os))), xs).get((), 0)


def _index(bits: Sequence[int]) -> int:
    # Wire 0 is the most significant bit
    i = 0
    for b in bits:
        i = (i << 1) | b
    return i


def to_matrix(sop: Pathsum) -> np.ndarray:
    """The matrix of ``sop`` in the computational basis"""
    M = np.zeros((2 ** sop.out_deg, 2 ** sop.in_deg), dtype=complex)
    for xs in itertools.product((0, 1), repeat=sop.in_deg):
        for out, amp in simulate(sop, xs).items():
            M[_index(out), _index(xs)] += amp
    return M
