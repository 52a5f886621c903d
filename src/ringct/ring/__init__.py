"""
Ring layer: decoy selection, key images and linkable ring signatures.
"""

from .construction import (
    KeyImage,
    Ring,
    RingMember,
    as_ring_member,
    build_ring,
    compute_key_image,
)
from .decoys import (
    DecoySelectionPolicy,
    GammaAgeDecoyPolicy,
    IndexedOutput,
    InMemoryOutputIndex,
    OutputIndex,
    UniformDecoyPolicy,
    policy_from_name,
    select_decoys,
)
from .lsag import LSAGScheme, RingSignature, RingSignatureScheme, link
from .mlsag import MLSAGScheme, MLSAGSignature

__all__ = [
    # Decoys
    "IndexedOutput",
    "OutputIndex",
    "InMemoryOutputIndex",
    "DecoySelectionPolicy",
    "UniformDecoyPolicy",
    "GammaAgeDecoyPolicy",
    "policy_from_name",
    "select_decoys",
    # Construction
    "KeyImage",
    "Ring",
    "RingMember",
    "as_ring_member",
    "build_ring",
    "compute_key_image",
    # Signatures
    "RingSignature",
    "RingSignatureScheme",
    "LSAGScheme",
    "link",
    "MLSAGSignature",
    "MLSAGScheme",
]
