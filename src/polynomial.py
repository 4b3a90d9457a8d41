from fractions import Fraction
from math import gcd, lcm
from typing import Callable, Iterable, Mapping, NamedTuple, Optional, Union

# Variables are tagged by class. The numeric tag doubles as the sort key
# so that inputs come before paths, and paths before free variables.
INPUT, PATH, FREE = 0, 1, 2


class Var(NamedTuple):
    """A polynomial variable

    Input and path variables carry a dense, zero-based index. Free variables
    carry a name. Variables are ordered by class and then by index or name.
    """
    kind: int
    key: Union[int, str]

    def __repr__(self) -> str:
        if self.kind == INPUT:
            return f"x{self.key}"
        if self.kind == PATH:
            return f"y{self.key}"
        return str(self.key)

    @property
    def is_input(self) -> bool:
        return self.kind == INPUT

    @property
    def is_path(self) -> bool:
        return self.kind == PATH

    @property
    def is_free(self) -> bool:
        return self.kind == FREE


def ivar(i: int) -> Var:
    return Var(INPUT, i)


def pvar(i: int) -> Var:
    return Var(PATH, i)


def fvar(name: str) -> Var:
    return Var(FREE, name)


# A monomial is a set of variables; the empty set is the constant monomial.
Monomial = frozenset
ONE = frozenset()


def monomial_key(m: Monomial) -> tuple[int, list[Var]]:
    """Sort key for canonical iteration: by degree, then by variables"""
    return (len(m), sorted(m))


def show_monomial(m: Monomial) -> str:
    if not m:
        return "1"
    return "".join(repr(v) for v in sorted(m))


class Boolean:
    """A multilinear polynomial over GF(2)

    Stored as the set of monomials with coefficient 1. Addition is XOR and
    multiplication is AND, so ``x * x == x`` and ``x + x == 0``.
    """
    __slots__ = ("_terms",)

    def __init__(self, terms: Iterable[Monomial] = ()):
        acc = set()
        for m in terms:
            acc.symmetric_difference_update((frozenset(m),))
        self._terms = frozenset(acc)

    @staticmethod
    def _make(terms: frozenset) -> "Boolean":
        p = object.__new__(Boolean)
        p._terms = terms
        return p

    @classmethod
    def var(cls, v: Var) -> "Boolean":
        return cls._make(frozenset((frozenset((v,)),)))

    @classmethod
    def const(cls, b: int) -> "Boolean":
        return cls._make(frozenset((ONE,)) if b % 2 else frozenset())

    @classmethod
    def monomial(cls, m: Iterable[Var]) -> "Boolean":
        return cls._make(frozenset((frozenset(m),)))

    @staticmethod
    def _coerce(other) -> Optional["Boolean"]:
        if isinstance(other, Boolean):
            return other
        if isinstance(other, int):
            return Boolean.const(other)
        return None

    def __add__(self, other) -> "Boolean":
        other = Boolean._coerce(other)
        if other is None:
            return NotImplemented
        return Boolean._make(self._terms ^ other._terms)

    __radd__ = __add__
    __sub__ = __add__
    __rsub__ = __add__

    def __mul__(self, other) -> "Boolean":
        other = Boolean._coerce(other)
        if other is None:
            return NotImplemented
        acc = set()
        for a in self._terms:
            for b in other._terms:
                acc.symmetric_difference_update((a | b,))
        return Boolean._make(frozenset(acc))

    __rmul__ = __mul__

    def __eq__(self, other) -> bool:
        other = Boolean._coerce(other)
        if other is None:
            return NotImplemented
        return self._terms == other._terms

    def __hash__(self) -> int:
        return hash(self._terms)

    def __bool__(self) -> bool:
        return bool(self._terms)

    def __repr__(self) -> str:
        if not self._terms:
            return "0"
        return " + ".join(show_monomial(m) for m in self.terms())

    def terms(self) -> list[Monomial]:
        return sorted(self._terms, key=monomial_key)

    def vars(self) -> set[Var]:
        return set().union(*self._terms)

    def degree(self) -> int:
        return max((len(m) for m in self._terms), default=0)

    @property
    def constant(self) -> int:
        return 1 if ONE in self._terms else 0

    def as_var(self) -> Optional[Var]:
        """Return ``v`` if the polynomial is exactly the variable ``v``"""
        if len(self._terms) != 1:
            return None
        (m,) = self._terms
        if len(m) != 1:
            return None
        (v,) = m
        return v

    def quot_var(self, v: Var) -> "Boolean":
        """The coefficient of ``v``, i.e. the terms containing ``v`` with ``v`` removed"""
        return Boolean._make(frozenset(m - {v} for m in self._terms if v in m))

    def rem_var(self, v: Var) -> "Boolean":
        """The terms not containing ``v``"""
        return Boolean._make(frozenset(m for m in self._terms if v not in m))

    def subst(self, v: Var, p: "Boolean") -> "Boolean":
        return self.rem_var(v) + self.quot_var(v) * p

    def subst_many(self, sub: Mapping[Var, "Boolean"]) -> "Boolean":
        """Simultaneously substitute every variable in ``sub``"""
        acc = Boolean()
        for m in self._terms:
            t = Boolean.monomial(m.difference(sub))
            for v in m:
                if v in sub:
                    t = t * sub[v]
            acc = acc + t
        return acc

    def rename(self, f: Callable[[Var], Var]) -> "Boolean":
        return Boolean(frozenset(f(v) for v in m) for m in self._terms)


def solve_for_x(p: Boolean) -> list[tuple[Var, Boolean]]:
    """Find the variables ``p`` can be solved for

    Args:
        p: A Boolean polynomial

    Returns:
        solutions: All pairs (v, q) with p = v + q and v not occurring in q,
            in variable order
    """
    terms = p.terms()
    solutions = []
    for m in terms:
        if len(m) != 1:
            continue
        (v,) = m
        if any(v in other for other in terms if other != m):
            continue
        solutions.append((v, p + Boolean.var(v)))
    return solutions


def element_order(a: Fraction) -> int:
    """Additive order of ``a`` in Q/2Z"""
    a = Fraction(a) % 2
    if a == 0:
        return 1
    return 2 * a.denominator // gcd(a.numerator, 2 * a.denominator)


class PseudoBoolean:
    """A multilinear polynomial with coefficients in Q/2Z

    Coefficients are rational multiples of pi taken modulo 2, so that a
    polynomial P denotes the phase e^{i pi P}. Zero coefficients are never
    stored. Two such polynomials cannot be multiplied together; products are
    only formed against the integer-valued lift of a Boolean polynomial, see
    :meth:`mul_boolean`.
    """
    __slots__ = ("_terms",)

    def __init__(self, terms: Iterable[tuple[Monomial, Fraction]] = ()):
        acc = {}
        for m, a in terms:
            m = frozenset(m)
            acc[m] = acc.get(m, 0) + Fraction(a)
        self._terms = {m: a % 2 for m, a in acc.items() if a % 2 != 0}

    @classmethod
    def const(cls, a) -> "PseudoBoolean":
        return cls(((ONE, a),))

    @classmethod
    def var(cls, v: Var, a=1) -> "PseudoBoolean":
        return cls(((frozenset((v,)), a),))

    @classmethod
    def monomial(cls, m: Iterable[Var], a=1) -> "PseudoBoolean":
        return cls(((frozenset(m), a),))

    @staticmethod
    def _coerce(other) -> Optional["PseudoBoolean"]:
        if isinstance(other, PseudoBoolean):
            return other
        if isinstance(other, (int, Fraction)):
            return PseudoBoolean.const(other)
        return None

    def __add__(self, other) -> "PseudoBoolean":
        other = PseudoBoolean._coerce(other)
        if other is None:
            return NotImplemented
        return PseudoBoolean(list(self._terms.items()) + list(other._terms.items()))

    __radd__ = __add__

    def __neg__(self) -> "PseudoBoolean":
        return PseudoBoolean((m, -a) for m, a in self._terms.items())

    def __sub__(self, other) -> "PseudoBoolean":
        other = PseudoBoolean._coerce(other)
        if other is None:
            return NotImplemented
        return self + (-other)

    def __rsub__(self, other) -> "PseudoBoolean":
        return (-self) + other

    def scale(self, c) -> "PseudoBoolean":
        """Multiply every coefficient by the rational ``c``

        For non-integer ``c`` this acts on the canonical representatives in [0, 2).
        """
        return PseudoBoolean((m, a * c) for m, a in self._terms.items())

    def __mul__(self, other) -> "PseudoBoolean":
        if isinstance(other, (int, Fraction)):
            return self.scale(other)
        if isinstance(other, Boolean):
            return self.mul_boolean(other)
        return NotImplemented

    __rmul__ = __mul__

    def mul_monomial(self, m: Monomial) -> "PseudoBoolean":
        return PseudoBoolean((n | m, a) for n, a in self._terms.items())

    def mul_boolean(self, b: Boolean) -> "PseudoBoolean":
        """Multiply by the 0/1-valued lift of a Boolean polynomial

        Uses lift(q + t) = lift(q) + t - 2 lift(q) t, which only ever scales
        coefficients by integers and so is well defined modulo 2.
        """
        acc = PseudoBoolean()
        for t in b.terms():
            acc = acc + self.mul_monomial(t) - 2 * acc.mul_monomial(t)
        return acc

    def __eq__(self, other) -> bool:
        other = PseudoBoolean._coerce(other)
        if other is None:
            return NotImplemented
        return self._terms == other._terms

    def __hash__(self) -> int:
        return hash(frozenset(self._terms.items()))

    def __bool__(self) -> bool:
        return bool(self._terms)

    def __repr__(self) -> str:
        if not self._terms:
            return "0"
        parts = []
        for a, m in self.terms():
            if not m:
                parts.append(str(a))
            elif a == 1:
                parts.append(show_monomial(m))
            else:
                parts.append(f"{a}{show_monomial(m)}")
        return " + ".join(parts)

    def terms(self) -> list[tuple[Fraction, Monomial]]:
        return [(self._terms[m], m) for m in sorted(self._terms, key=monomial_key)]

    def vars(self) -> set[Var]:
        return set().union(*self._terms)

    def degree(self) -> int:
        return max((len(m) for m in self._terms), default=0)

    @property
    def constant(self) -> Fraction:
        return self._terms.get(ONE, Fraction(0))

    def drop_constant(self) -> "PseudoBoolean":
        return PseudoBoolean((m, a) for m, a in self._terms.items() if m)

    def order(self) -> int:
        """The least n such that n * P is zero"""
        return lcm(1, *(element_order(a) for a in self._terms.values()))

    def quot_var(self, v: Var) -> "PseudoBoolean":
        return PseudoBoolean((m - {v}, a) for m, a in self._terms.items() if v in m)

    def rem_var(self, v: Var) -> "PseudoBoolean":
        return PseudoBoolean((m, a) for m, a in self._terms.items() if v not in m)

    def collect(self, vs: Iterable[Var]) -> "PseudoBoolean":
        """The terms whose variables all lie in ``vs``, constant included"""
        vs = frozenset(vs)
        return PseudoBoolean((m, a) for m, a in self._terms.items() if m <= vs)

    def subst(self, v: Var, p: Boolean) -> "PseudoBoolean":
        return self.rem_var(v) + self.quot_var(v).mul_boolean(p)

    def subst_many(self, sub: Mapping[Var, Boolean]) -> "PseudoBoolean":
        """Simultaneously substitute every variable in ``sub``"""
        acc = PseudoBoolean()
        for m, a in self._terms.items():
            t = PseudoBoolean.monomial(m.difference(sub), a)
            for v in sorted(m):
                if v in sub:
                    t = t.mul_boolean(sub[v])
            acc = acc + t
        return acc

    def rename(self, f: Callable[[Var], Var]) -> "PseudoBoolean":
        return PseudoBoolean((frozenset(f(v) for v in m), a) for m, a in self._terms.items())

    def to_boolean(self) -> Optional[Boolean]:
        """The equivalent Boolean polynomial, if every coefficient has order at most 2"""
        if any(a != 1 for a in self._terms.values()):
            return None
        return Boolean(self._terms)


def lift(p: Boolean, scale=1) -> PseudoBoolean:
    """The phase ``scale * p`` where ``p`` is read as an integer 0 or 1"""
    return PseudoBoolean.const(scale).mul_boolean(p)
