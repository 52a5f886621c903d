"""
Unit tests for the output index and decoy selection.
"""

from collections import Counter

import pytest

from ringct.errors import BuildError, ConfigurationError, InsufficientDecoys
from ringct.keys.stealth import WalletKeys, derive_one_time_output
from ringct.ring.decoys import (
    DecoySelectionPolicy,
    GammaAgeDecoyPolicy,
    InMemoryOutputIndex,
    UniformDecoyPolicy,
    policy_from_name,
    select_decoys,
)


class TestInMemoryOutputIndex:
    """Test the reference output index."""

    def test_add_and_get(self, mint):
        index = InMemoryOutputIndex()
        entry = mint(index, WalletKeys.generate().address, 10, height=3)
        assert entry.global_index == 0
        assert index.get(0) == entry
        assert index.height() == 3
        assert len(index) == 1

    def test_unknown_index(self):
        with pytest.raises(KeyError):
            InMemoryOutputIndex().get(5)

    def test_candidates_by_denomination(self):
        index = InMemoryOutputIndex()
        address = WalletKeys.generate().address
        for denomination in (10, 10, 20):
            output, _ = derive_one_time_output(address, denomination)
            index.add_output(output, denomination=denomination)
        assert len(index.candidates(10)) == 2
        assert len(index.candidates(20)) == 1
        assert len(index.candidates(None)) == 3

    def test_mark_spent(self, output_index):
        output_index.mark_spent(0)
        assert output_index.get(0).spent

    def test_negative_height_rejected(self, mint):
        with pytest.raises(ValueError):
            mint(InMemoryOutputIndex(), WalletKeys.generate().address, 1, height=-1)


class TestSelectDecoys:
    """Test select_decoys."""

    def test_selects_requested_count(self, output_index):
        decoys = select_decoys(None, 10, output_index)
        assert len(decoys) == 10
        assert len({d.global_index for d in decoys}) == 10

    def test_respects_exclusions(self, output_index):
        excluded = list(range(0, 24, 2))
        for _ in range(5):
            decoys = select_decoys(None, 10, output_index, exclude=excluded)
            assert not {d.global_index for d in decoys} & set(excluded)

    def test_excludes_keys(self, output_index):
        banned = output_index.get(3).public_key
        for _ in range(5):
            decoys = select_decoys(None, 23, output_index, exclude_keys=[banned])
            assert banned not in {d.public_key for d in decoys}

    def test_skips_spent_outputs(self, output_index):
        for i in range(20):
            output_index.mark_spent(i)
        decoys = select_decoys(None, 4, output_index)
        assert {d.global_index for d in decoys} == {20, 21, 22, 23}

    def test_confidential_selection_needs_commitments(self, mint):
        index = InMemoryOutputIndex()
        address = WalletKeys.generate().address
        for _ in range(3):
            output, _ = derive_one_time_output(address, 5)
            index.add_output(output)
        committed = {mint(index, address, 5).global_index for _ in range(2)}

        decoys = select_decoys(None, 2, index)
        assert {d.global_index for d in decoys} == committed
        with pytest.raises(InsufficientDecoys):
            select_decoys(None, 3, index)

    def test_insufficient_decoys(self, output_index):
        with pytest.raises(InsufficientDecoys) as exc_info:
            select_decoys(None, 30, output_index)
        assert exc_info.value.requested == 30
        assert exc_info.value.available == 24

    def test_denomination_without_candidates(self, output_index):
        with pytest.raises(InsufficientDecoys):
            select_decoys(1000, 1, output_index)

    def test_zero_decoys(self, output_index):
        assert select_decoys(None, 0, output_index) == []

    def test_misbehaving_policy_rejected(self, output_index):
        class RepeatingPolicy(DecoySelectionPolicy):
            def choose(self, candidates, count, current_height):
                return [candidates[0]] * count

        with pytest.raises(BuildError, match="invalid selection"):
            select_decoys(None, 3, output_index, policy=RepeatingPolicy())


class TestPolicies:
    """Test the bundled selection policies."""

    def test_uniform_policy_covers_all_outputs(self, output_index):
        counts = Counter()
        for _ in range(200):
            for decoy in select_decoys(None, 4, output_index, policy=UniformDecoyPolicy()):
                counts[decoy.global_index] += 1
        assert set(counts) == set(range(24))

    def test_gamma_policy_returns_distinct_eligible_outputs(self, output_index):
        policy = GammaAgeDecoyPolicy()
        for _ in range(20):
            decoys = select_decoys(None, 8, output_index, policy=policy)
            assert len({d.global_index for d in decoys}) == 8

    def test_gamma_policy_favours_recent_outputs(self, mint):
        index = InMemoryOutputIndex()
        address = WalletKeys.generate().address
        for height in range(0, 100000, 1000):
            mint(index, address, 1, height=height)

        policy = GammaAgeDecoyPolicy()
        recent = 0
        for _ in range(50):
            decoy = select_decoys(None, 1, index, policy=policy)[0]
            if decoy.height >= 90000:
                recent += 1
        assert recent > 25

    def test_gamma_policy_invalid_parameters(self):
        with pytest.raises(ConfigurationError):
            GammaAgeDecoyPolicy(shape=0)

    def test_policy_from_name(self):
        assert isinstance(policy_from_name("uniform"), UniformDecoyPolicy)
        assert isinstance(policy_from_name("gamma"), GammaAgeDecoyPolicy)
        with pytest.raises(ConfigurationError):
            policy_from_name("triangular")
