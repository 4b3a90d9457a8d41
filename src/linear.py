from galois import FieldArray, GF2 as GF
import numpy as np

# Gates here are index tuples: (control, target) is a CNOT adding wire
# `control` into wire `target`, and (target,) is a NOT. The rows of an affine
# map (A, b) are the functions held by each wire, so a CNOT (i, j) is the row
# operation A[j, :] += A[i, :].


def synth_affine(A: FieldArray, b: FieldArray, permute: bool = False) -> list[tuple[int, ...]]:
    """Synthesize a CNOT+NOT circuit reducing an affine map using Gauss-Jordan elimination

    Args:
        A: An nxm matrix whose rows give the linear part held by each wire
        b: A vector of length n giving the constant part held by each wire
        permute: If True, A must be square and invertible, and is reduced
            all the way to the identity rather than to a row-permuted echelon form

    Returns:
        gates: A list of CNOT gates represented as (control, target) and NOT gates
            represented as (target,). Applied in order, they bring A to reduced row
            echelon form and b to zero.
    """
    gates = []
    A0, b0 = A, b
    A, b = A.copy(), b.copy()
    n, m = A.shape
    pivots = set()
    for col in range(m):
        # Pick the first row not yet holding a pivot
        for p in range(n):
            if p not in pivots and A[p, col] != 0:
                break
        else:
            continue
        pivots.add(p)

        # Clear the column everywhere else
        for j in range(n):
            if j == p: continue
            if A[j, col] != 0:
                gates.append((p, j))
                A[j, :] += A[p, :]
                b[j] += b[p]

    if permute:
        assert n == m and len(pivots) == n
        # A is now a permutation matrix, fix it up with swaps
        for i in range(n):
            if A[i, i] == 0:
                for j in range(i + 1, n):
                    if A[j, i] != 0:
                        break
                gates += [(i, j), (j, i), (i, j)]
                A[[i, j], :] = A[[j, i], :]
                b[[i, j]] = b[[j, i]]

    for i in range(n):
        if b[i] != 0:
            gates.append((i,))
            b[i] = 0

    # Sanity check that the gates implement the reduction
    R, c = affine_action(gates, n)
    assert not np.any(R @ A0 + A)
    assert not np.any(R @ b0 + c)
    return gates


def affine_action(gates: list[tuple[int, ...]], n: int) -> tuple[FieldArray, FieldArray]:
    """Construct the affine map implemented by a list of CNOT and NOT gates

    Args:
        gates: A list of CNOT gates (control, target) and NOT gates (target,)
        n: The number of wires

    Returns:
        A: An invertible nxn matrix
        b: A vector of length n, so that the circuit maps x to Ax + b
    """
    A = GF.Identity(n)
    b = GF.Zeros(n)
    for g in gates:
        if len(g) == 1:
            b[g[0]] += GF(1)
            continue
        i, j = g
        assert i != j
        A[j, :] += A[i, :]
        b[j] += b[i]
    return A, b
