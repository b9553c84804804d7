"""Pydantic models for exchanging group trees, members and proofs.

Byte strings are carried as lowercase hex so that records can be stored
or handed to verifiers written in any language.  Every model can be
published as JSON Schema via ``export_json_schemas()``.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from semaphore_groups.config import settings
from semaphore_groups.proof import Branch, Proof, Side

SCHEMA_VERSION = "1.0"


def _check_hex(value: str) -> str:
    try:
        bytes.fromhex(value)
    except ValueError as exc:
        raise ValueError(f"not a hex string: {value[:16]!r}") from exc
    return value.lower()


# ---------------------------------------------------------------------------
# Proofs
# ---------------------------------------------------------------------------


class BranchPayload(BaseModel):
    direction: Side = Field(..., description="Side the sibling occupies: 'left' or 'right'")
    sibling: str = Field(..., description="Hex-encoded sibling digest")

    @field_validator("sibling")
    @classmethod
    def sibling_is_hex(cls, v: str) -> str:
        return _check_hex(v)


class ProofPayload(BaseModel):
    """Inclusion proof for one leaf of a group tree."""

    schema_version: str = SCHEMA_VERSION
    depth: int = Field(..., ge=1, description="Depth of the tree the proof was generated from")
    hash_name: str = Field(default="sha256", description="hashlib algorithm used for internal nodes")
    leaf_index: int = Field(..., ge=0)
    leaf: str = Field(..., description="Hex-encoded leaf value the proof was generated for")
    root: str = Field(..., description="Hex-encoded tree root at generation time")
    path: list[BranchPayload] = Field(..., description="Siblings ordered leaf to root")

    @field_validator("leaf", "root")
    @classmethod
    def digests_are_hex(cls, v: str) -> str:
        return _check_hex(v)

    @model_validator(mode="after")
    def path_matches_depth(self) -> ProofPayload:
        if len(self.path) != self.depth:
            raise ValueError(f"path has {len(self.path)} branches, depth is {self.depth}")
        return self

    @classmethod
    def from_proof(
        cls, proof: Proof, leaf: bytes, root: bytes, hash_name: str | None = None
    ) -> ProofPayload:
        return cls(
            depth=len(proof),
            hash_name=hash_name or settings.hash_algorithm,
            leaf_index=proof.leaf_index(),
            leaf=leaf.hex(),
            root=root.hex(),
            path=[BranchPayload(direction=b.side, sibling=b.sibling.hex()) for b in proof],
        )

    def to_proof(self) -> Proof:
        return Proof(tuple(Branch(b.direction, bytes.fromhex(b.sibling)) for b in self.path))


# ---------------------------------------------------------------------------
# Trees
# ---------------------------------------------------------------------------


class TreeSnapshot(BaseModel):
    """Complete node array of a tree, as stored between mutations."""

    schema_version: str = SCHEMA_VERSION
    depth: int = Field(..., ge=1)
    hash_name: str = "sha256"
    default_leaf: str = Field(..., description="Hex-encoded default leaf")
    nodes: list[str] = Field(..., description="Hex-encoded node array, index 0 is filler")

    @field_validator("default_leaf")
    @classmethod
    def default_leaf_is_hex(cls, v: str) -> str:
        return _check_hex(v)

    @field_validator("nodes")
    @classmethod
    def nodes_are_hex(cls, v: list[str]) -> list[str]:
        return [_check_hex(n) for n in v]


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


class Member(BaseModel):
    """A member of a group and the leaf it occupies."""

    group_id: int
    identity_commitment: str = Field(..., description="Hex-encoded raw identity commitment")
    index: int = Field(..., ge=0, description="Leaf index in the group tree")
    leaf: str = Field(..., description="Hex-encoded encoded leaf value")


# ---------------------------------------------------------------------------
# JSON Schema export
# ---------------------------------------------------------------------------

_SCHEMA_MODELS: dict[str, type[BaseModel]] = {
    "BranchPayload": BranchPayload,
    "ProofPayload": ProofPayload,
    "TreeSnapshot": TreeSnapshot,
    "Member": Member,
}


def export_json_schemas(output_dir: str | Path | None = None) -> dict[str, dict]:
    """Generate versioned JSON Schema definitions for all models.

    If *output_dir* is provided, each schema is also written to
    ``<output_dir>/<ModelName>.v<version>.schema.json``.
    """
    schemas: dict[str, dict] = {}
    for name, model_cls in _SCHEMA_MODELS.items():
        schema = model_cls.model_json_schema()
        schema["$schema"] = "https://json-schema.org/draft/2020-12/schema"
        schemas[name] = schema

    if output_dir is not None:
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        for name, schema in schemas.items():
            path = out / f"{name}.v{SCHEMA_VERSION}.schema.json"
            path.write_text(json.dumps(schema, indent=2) + "\n")

    return schemas
