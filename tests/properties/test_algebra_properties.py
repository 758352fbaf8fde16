"""Property-based tests for the version algebra.

Verifies that:
- best_match always returns an admitted candidate
- no admitted semantic candidate is strictly greater than the result
- the result does not depend on input order
"""
from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from armkit.core.version import admits, best_match, parse_constraint, parse_version
from armkit.exceptions import NoMatchError, VersionKindError

# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

components = st.integers(min_value=0, max_value=4)

semver_strings = st.builds(
    lambda p, a, b, c: f"{p}{a}.{b}.{c}",
    st.sampled_from(["", "v"]),
    components,
    components,
    components,
)

opaque_strings = st.sampled_from(["main", "develop", "release", "1.2", "v1"])

version_lists = st.lists(st.one_of(semver_strings, opaque_strings), min_size=0, max_size=12)

constraint_strings = st.one_of(
    st.just("latest"),
    st.builds(
        lambda op, a, b, c: f"{op}{a}.{b}.{c}",
        st.sampled_from(["", "^", "~", "="]),
        components,
        components,
        components,
    ),
)


def _safe_admits(constraint, version) -> bool:
    try:
        return admits(constraint, version)
    except VersionKindError:
        return False


class TestBestMatchProperties:
    """Soundness and maximality of best_match."""

    @given(raws=version_lists, text=constraint_strings)
    @settings(max_examples=200)
    def test_result_is_admitted_and_maximal(self, raws: list[str], text: str) -> None:
        """The chosen version is admitted and no admitted semver beats it."""
        constraint = parse_constraint(text)
        versions = [parse_version(r) for r in raws]
        try:
            best = best_match(versions, constraint)
        except NoMatchError:
            assert not any(_safe_admits(constraint, v) for v in versions)
            return
        assert _safe_admits(constraint, best)
        if best.semantic:
            for v in versions:
                if v.semantic and _safe_admits(constraint, v):
                    assert v.key <= best.key

    @given(raws=version_lists, text=constraint_strings, data=st.data())
    @settings(max_examples=100)
    def test_order_independent(self, raws: list[str], text: str, data: st.DataObject) -> None:
        """Permuting the candidate list does not change the result."""
        constraint = parse_constraint(text)
        shuffled = data.draw(st.permutations(raws))
        try:
            first = best_match([parse_version(r) for r in raws], constraint)
        except NoMatchError:
            first = None
        try:
            second = best_match([parse_version(r) for r in shuffled], constraint)
        except NoMatchError:
            second = None
        assert (first.raw if first else None) == (second.raw if second else None)
