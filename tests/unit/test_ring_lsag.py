"""
Unit tests for key images, ring assembly and LSAG signatures.
"""

from collections import Counter

import pytest

from ringct.crypto.group import GroupElement, Scalar, hp
from ringct.errors import BuildError, DecodingError
from ringct.keys.stealth import generate_keypair
from ringct.ring.construction import (
    KeyImage,
    Ring,
    RingMember,
    as_ring_member,
    build_ring,
    compute_key_image,
)
from ringct.ring.lsag import LSAGScheme, RingSignature, link

MESSAGE = b"pay 100"


def make_ring(size=5):
    signer = generate_keypair()
    decoys = [generate_keypair().public for _ in range(size - 1)]
    return build_ring(signer.public, signer.secret, decoys), signer


class TestKeyImage:
    """Test key image computation."""

    def test_key_image_formula(self):
        keypair = generate_keypair()
        image = compute_key_image(keypair.secret, keypair.public)
        assert image.point == hp(keypair.public) * keypair.secret

    def test_key_image_is_deterministic(self):
        keypair = generate_keypair()
        assert compute_key_image(keypair.secret) == compute_key_image(
            keypair.secret, keypair.public
        )

    def test_distinct_keys_give_distinct_images(self):
        assert compute_key_image(Scalar.random()) != compute_key_image(Scalar.random())

    def test_zero_secret_rejected(self):
        with pytest.raises(ValueError):
            compute_key_image(Scalar.zero())

    def test_identity_key_image_rejected(self):
        with pytest.raises(DecodingError):
            KeyImage(GroupElement.identity())

    def test_encoding(self):
        image = compute_key_image(Scalar.random())
        assert KeyImage.from_bytes(image.to_bytes()) == image
        assert image.hex()[:16] in repr(image)


class TestBuildRing:
    """Test build_ring."""

    def test_ring_contains_real_member(self):
        ring, signer = make_ring()
        assert ring.size == 5
        assert ring.public_keys[ring.real_index] == signer.public
        assert ring.key_image == compute_key_image(signer.secret, signer.public)

    def test_real_index_not_in_repr(self):
        ring, _ = make_ring()
        assert "real_index" not in repr(ring)

    def test_real_position_is_uniform(self):
        signer = generate_keypair()
        decoys = [generate_keypair().public for _ in range(3)]
        positions = Counter(
            build_ring(signer.public, signer.secret, decoys).real_index for _ in range(400)
        )
        assert set(positions) == {0, 1, 2, 3}
        assert all(count > 50 for count in positions.values())

    def test_wrong_secret_rejected(self):
        signer = generate_keypair()
        with pytest.raises(BuildError, match="does not match"):
            build_ring(signer.public, Scalar.random(), [generate_keypair().public])

    def test_duplicate_decoy_rejected(self):
        signer = generate_keypair()
        decoy = generate_keypair().public
        with pytest.raises(BuildError, match="appears twice"):
            build_ring(signer.public, signer.secret, [decoy, decoy])

    def test_real_key_among_decoys_rejected(self):
        signer = generate_keypair()
        with pytest.raises(BuildError):
            build_ring(signer.public, signer.secret, [signer.public])

    def test_member_ids_carried(self, output_index):
        signer = generate_keypair()
        decoys = [output_index.get(i) for i in range(4)]
        ring = build_ring(RingMember(signer.public, 99), signer.secret, decoys)
        assert sorted(ring.member_ids) == [0, 1, 2, 3, 99]

    def test_as_ring_member_rejects_unknown_types(self):
        with pytest.raises(TypeError):
            as_ring_member("not a member")


class TestLSAG:
    """Test the LSAG scheme."""

    def setup_method(self):
        self.scheme = LSAGScheme()

    def test_sign_and_verify(self):
        ring, signer = make_ring()
        signature = self.scheme.sign(MESSAGE, ring, signer.secret)
        assert signature.size == 5
        assert self.scheme.verify(MESSAGE, ring.public_keys, signature)

    def test_two_member_ring(self):
        ring, signer = make_ring(size=2)
        signature = self.scheme.sign(MESSAGE, ring, signer.secret)
        assert self.scheme.verify(MESSAGE, ring.public_keys, signature)

    def test_wrong_message_fails(self):
        ring, signer = make_ring()
        signature = self.scheme.sign(MESSAGE, ring, signer.secret)
        assert not self.scheme.verify(b"pay 101", ring.public_keys, signature)

    @pytest.mark.parametrize("position", range(5))
    def test_tampered_response_fails(self, position):
        ring, signer = make_ring()
        signature = self.scheme.sign(MESSAGE, ring, signer.secret)
        signature.responses[position] = signature.responses[position] + Scalar.one()
        assert not self.scheme.verify(MESSAGE, ring.public_keys, signature)

    @pytest.mark.parametrize("position", range(5))
    def test_tampered_challenge_fails(self, position):
        ring, signer = make_ring()
        signature = self.scheme.sign(MESSAGE, ring, signer.secret)
        signature.challenges[position] = signature.challenges[position] + Scalar.one()
        assert not self.scheme.verify(MESSAGE, ring.public_keys, signature)

    def test_substituted_key_image_fails(self):
        ring, signer = make_ring()
        signature = self.scheme.sign(MESSAGE, ring, signer.secret)
        signature.key_image = compute_key_image(Scalar.random())
        assert not self.scheme.verify(MESSAGE, ring.public_keys, signature)

    def test_reordered_ring_fails(self):
        ring, signer = make_ring()
        signature = self.scheme.sign(MESSAGE, ring, signer.secret)
        keys = ring.public_keys
        keys[0], keys[1] = keys[1], keys[0]
        assert not self.scheme.verify(MESSAGE, keys, signature)

    def test_substituted_member_fails(self):
        ring, signer = make_ring()
        signature = self.scheme.sign(MESSAGE, ring, signer.secret)
        keys = ring.public_keys
        keys[(ring.real_index + 1) % 5] = generate_keypair().public
        assert not self.scheme.verify(MESSAGE, keys, signature)

    def test_length_mismatch_fails(self):
        ring, signer = make_ring()
        signature = self.scheme.sign(MESSAGE, ring, signer.secret)
        assert not self.scheme.verify(MESSAGE, ring.public_keys[:4], signature)
        signature.responses.pop()
        assert not self.scheme.verify(MESSAGE, ring.public_keys, signature)

    def test_identity_member_fails_closed(self):
        ring, signer = make_ring()
        signature = self.scheme.sign(MESSAGE, ring, signer.secret)
        keys = ring.public_keys
        keys[(ring.real_index + 1) % 5] = GroupElement.identity()
        assert not self.scheme.verify(MESSAGE, keys, signature)

    def test_single_member_ring_rejected(self):
        signer = generate_keypair()
        ring = Ring([RingMember(signer.public)], compute_key_image(signer.secret), 0)
        with pytest.raises(ValueError, match="at least 2"):
            self.scheme.sign(MESSAGE, ring, signer.secret)

    def test_sign_with_wrong_secret_rejected(self):
        ring, _ = make_ring()
        with pytest.raises(ValueError, match="does not match"):
            self.scheme.sign(MESSAGE, ring, Scalar.random())

    def test_sign_without_real_index_rejected(self):
        ring, signer = make_ring()
        ring.real_index = None
        with pytest.raises(ValueError, match="position"):
            self.scheme.sign(MESSAGE, ring, signer.secret)

    def test_signature_encoding(self):
        ring, signer = make_ring()
        signature = self.scheme.sign(MESSAGE, ring, signer.secret)
        decoded = RingSignature.from_bytes(signature.to_bytes())
        assert decoded.key_image == signature.key_image
        assert self.scheme.verify(MESSAGE, ring.public_keys, decoded)

    def test_linkability(self):
        """The same key signing in two different rings yields the same key image."""
        signer = generate_keypair()
        first = build_ring(signer.public, signer.secret, [generate_keypair().public for _ in range(4)])
        second = build_ring(signer.public, signer.secret, [generate_keypair().public for _ in range(4)])
        sig1 = self.scheme.sign(b"tx one", first, signer.secret)
        sig2 = self.scheme.sign(b"tx two", second, signer.secret)
        assert self.scheme.verify(b"tx one", first.public_keys, sig1)
        assert self.scheme.verify(b"tx two", second.public_keys, sig2)
        assert link(sig1, sig2)

    def test_different_signers_do_not_link(self):
        ring1, signer1 = make_ring()
        ring2, signer2 = make_ring()
        sig1 = self.scheme.sign(MESSAGE, ring1, signer1.secret)
        sig2 = self.scheme.sign(MESSAGE, ring2, signer2.secret)
        assert not link(sig1, sig2)

    def test_any_member_can_sign(self):
        members = [generate_keypair() for _ in range(4)]
        keys = [m.public for m in members]
        for position, member in enumerate(members):
            ring = Ring(
                [RingMember(k) for k in keys],
                compute_key_image(member.secret, member.public),
                real_index=position,
            )
            signature = self.scheme.sign(MESSAGE, ring, member.secret)
            assert self.scheme.verify(MESSAGE, keys, signature)
