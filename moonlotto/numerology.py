def digital_root(n):
    """
    Reduce a non-negative integer to a single digit 1..9 by repeated digit sums.
    0 maps to 9 so every number has an anchor.
    """
    n = abs(int(n))
    if n == 0:
        return 9
    digits = [int(c) for c in str(n)]
    while len(digits) > 1:
        digits = [int(c) for c in str(sum(digits))]
    return digits[0]


def anchor_root(index):
    """Calendar index to anchor digit: index mod 9, with 0 read as 9."""
    r = int(index) % 9
    return 9 if r == 0 else r


def root_distance(a, b):
    # distance on the 1..9 circle, so 9 and 1 are neighbours
    d = abs(int(a) - int(b)) % 9
    return min(d, 9 - d)


def root_bias(number_root, anchor, strength=10.0):
    """Full strength on a root match, half when the roots are adjacent."""
    d = root_distance(number_root, anchor)
    if d == 0:
        return float(strength)
    if d == 1:
        return float(strength) / 2.0
    return 0.0
