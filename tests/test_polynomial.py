from fractions import Fraction

from polynomial import Boolean, PseudoBoolean, element_order, fvar, ivar, lift, pvar, solve_for_x

x, y, z = Boolean.var(ivar(0)), Boolean.var(pvar(0)), Boolean.var(pvar(1))


def test_boolean_ring():
    assert x + x == 0
    assert x * x == x
    assert (x + 1) * (x + 1) == x + 1
    assert (x + y) * (x + y) == x + y
    assert x * (y + z) == x * y + x * z
    assert (1 + x).constant == 1
    assert (x * y + z).degree() == 2
    assert Boolean().degree() == 0


def test_boolean_substitution():
    p = x * y + z
    assert p.quot_var(ivar(0)) == y
    assert p.rem_var(ivar(0)) == z
    assert p.subst(pvar(0), x + 1) == z
    # Substitutions happen simultaneously
    swapped = (x + y * z).subst_many({ivar(0): y, pvar(0): x})
    assert swapped == y + x * z


def test_boolean_as_var():
    assert x.as_var() == ivar(0)
    assert (x + 1).as_var() is None
    assert (x * y).as_var() is None
    assert Boolean().as_var() is None


def test_solve_for_x():
    assert solve_for_x(x + y * z) == [(ivar(0), y * z)]
    assert solve_for_x(x + y) == [(ivar(0), y), (pvar(0), x)]
    assert solve_for_x(x * y + y) == []


def test_variable_order():
    assert ivar(3) < pvar(0) < fvar("a")
    assert repr(ivar(2)) == "x2"
    assert repr(pvar(1)) == "y1"
    assert repr(fvar("a")) == "a"


def test_pseudoboolean_periodic():
    a = PseudoBoolean.var(ivar(0), Fraction(3, 2)) + PseudoBoolean.var(ivar(0), Fraction(1, 2))
    assert a == 0
    assert not a
    assert PseudoBoolean.const(Fraction(5, 2)) == Fraction(1, 2)
    assert -PseudoBoolean.var(ivar(0), Fraction(1, 4)) == PseudoBoolean.var(ivar(0), Fraction(7, 4))


def test_lift():
    # lift(x + y) = x + y - 2xy
    expected = PseudoBoolean([
        ({ivar(0)}, Fraction(1, 2)),
        ({pvar(0)}, Fraction(1, 2)),
        ({ivar(0), pvar(0)}, 1),
    ])
    assert lift(x + y, Fraction(1, 2)) == expected
    assert lift(x + y) == PseudoBoolean.var(ivar(0)) + PseudoBoolean.var(pvar(0))
    assert lift(1 + x, Fraction(1, 4)) == Fraction(1, 4) + PseudoBoolean.var(ivar(0), Fraction(7, 4))


def test_to_boolean():
    p = PseudoBoolean.var(ivar(0)) + PseudoBoolean.monomial([ivar(0), pvar(0)])
    assert p.to_boolean() == x + x * y
    assert PseudoBoolean.var(ivar(0), Fraction(1, 2)).to_boolean() is None
    assert PseudoBoolean().to_boolean() == 0


def test_order():
    assert element_order(Fraction(1, 4)) == 8
    assert element_order(Fraction(1, 2)) == 4
    assert element_order(1) == 2
    assert element_order(2) == 1
    p = PseudoBoolean.var(ivar(0), Fraction(1, 4)) + PseudoBoolean.var(pvar(0))
    assert p.order() == 8
    assert PseudoBoolean().order() == 1


def test_pseudoboolean_substitution():
    p = PseudoBoolean.monomial([ivar(0), pvar(0)], Fraction(1, 2)) + PseudoBoolean.var(pvar(1))
    assert p.quot_var(pvar(0)) == PseudoBoolean.var(ivar(0), Fraction(1, 2))
    assert p.rem_var(pvar(0)) == PseudoBoolean.var(pvar(1))
    assert p.subst(pvar(0), Boolean.const(1)) == PseudoBoolean.var(ivar(0), Fraction(1, 2)) + PseudoBoolean.var(pvar(1))
    assert p.subst(pvar(0), Boolean()) == PseudoBoolean.var(pvar(1))
    # y0 <- y0 + y1 in y1 gives y1, and in 1/2 x0 y0 gives 1/2 x0 (y0 + y1 - 2 y0 y1)
    q = p.subst_many({pvar(0): y + z})
    assert q == (
        PseudoBoolean.monomial([ivar(0), pvar(0)], Fraction(1, 2))
        + PseudoBoolean.monomial([ivar(0), pvar(1)], Fraction(1, 2))
        + PseudoBoolean.monomial([ivar(0), pvar(0), pvar(1)], 1)
        + PseudoBoolean.var(pvar(1))
    )


def test_collect():
    p = (
        PseudoBoolean.const(Fraction(1, 4))
        + PseudoBoolean.var(ivar(0), Fraction(1, 2))
        + PseudoBoolean.monomial([ivar(0), pvar(0)])
    )
    assert p.collect([ivar(0)]) == PseudoBoolean.const(Fraction(1, 4)) + PseudoBoolean.var(ivar(0), Fraction(1, 2))
    assert p.collect([]) == Fraction(1, 4)
    assert p.drop_constant().constant == 0
