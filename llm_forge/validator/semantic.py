"""Semantic validation: the IR's cross-reference invariants.

Runs only on structurally valid documents. Every check appends to the same
issue list, so one pass reports every violation:
- every type reference resolves to a declared type
- an object's required names are a subset of its properties
- operation ids are unique across all endpoints
- endpoint authentication ids resolve to declared auth schemes
- type and auth scheme ids are unique
- union discriminator mappings point at the union's own variants
"""

from __future__ import annotations

from collections.abc import Iterator

from llm_forge.ir.models import (
    ArrayType,
    CanonicalSchema,
    ObjectType,
    TypeReference,
    UnionType,
)
from llm_forge.validator.result import ValidationIssue


def validate_semantics(schema: CanonicalSchema) -> list[ValidationIssue]:
    """Check a parsed canonical schema against the IR invariants.

    Args:
        schema: A structurally valid ``CanonicalSchema``.

    Returns:
        Every violation found, in document order. Empty means valid.
    """
    issues: list[ValidationIssue] = []
    type_ids = {t.id for t in schema.types}

    _check_duplicate_type_ids(schema, issues)
    _check_type_references(schema, type_ids, issues)
    _check_required_properties(schema, issues)
    _check_discriminator_mappings(schema, issues)
    _check_operation_ids(schema, issues)
    _check_auth_references(schema, issues)

    return issues


def iter_type_references(schema: CanonicalSchema) -> Iterator[tuple[str, TypeReference]]:
    """Yield ``(path, reference)`` for every type reference in the document."""
    for i, t in enumerate(schema.types):
        base = f"types[{i}]"
        if isinstance(t, ObjectType):
            for j, prop in enumerate(t.properties):
                yield f"{base}.properties[{j}].type", prop.type_ref
            if isinstance(t.additional_properties, TypeReference):
                yield f"{base}.additionalProperties", t.additional_properties
        elif isinstance(t, ArrayType):
            yield f"{base}.items", t.items
        elif isinstance(t, UnionType):
            for j, variant in enumerate(t.variants):
                yield f"{base}.variants[{j}]", variant

    for i, endpoint in enumerate(schema.endpoints):
        base = f"endpoints[{i}]"
        for j, param in enumerate(endpoint.parameters):
            yield f"{base}.parameters[{j}].type", param.type_ref
        if endpoint.request_body is not None:
            yield f"{base}.requestBody.type", endpoint.request_body.type_ref
        for j, response in enumerate(endpoint.responses):
            if response.type_ref is not None:
                yield f"{base}.responses[{j}].type", response.type_ref
            for name, header in response.headers.items():
                yield f"{base}.responses[{j}].headers.{name}", header

    for i, error in enumerate(schema.errors):
        if error.type_ref is not None:
            yield f"errors[{i}].type", error.type_ref


def _check_duplicate_type_ids(schema: CanonicalSchema, issues: list[ValidationIssue]):
    seen: dict[str, int] = {}
    for i, t in enumerate(schema.types):
        if t.id in seen:
            issues.append(
                ValidationIssue(
                    path=f"types[{i}].id",
                    message=f"Type id '{t.id}' is already declared at types[{seen[t.id]}]",
                    code="duplicate_type_id",
                )
            )
        else:
            seen[t.id] = i


def _check_type_references(schema: CanonicalSchema, type_ids: set[str], issues: list[ValidationIssue]):
    for path, ref in iter_type_references(schema):
        if ref.type_id is not None and ref.type_id not in type_ids:
            issues.append(
                ValidationIssue(
                    path=f"{path}.typeId",
                    message=f"Type reference '{ref.type_id}' does not resolve to a declared type",
                    code="invalid_type_reference",
                )
            )


def _check_required_properties(schema: CanonicalSchema, issues: list[ValidationIssue]):
    for i, t in enumerate(schema.types):
        if not isinstance(t, ObjectType):
            continue
        names = {p.name for p in t.properties}
        for name in t.required:
            if name not in names:
                issues.append(
                    ValidationIssue(
                        path=f"types[{i}].required",
                        message=f"Required property '{name}' is not declared on type '{t.name}'",
                        code="invalid_required_property",
                    )
                )


def _check_discriminator_mappings(schema: CanonicalSchema, issues: list[ValidationIssue]):
    for i, t in enumerate(schema.types):
        if not isinstance(t, UnionType):
            continue
        variant_ids = {v.type_id for v in t.variants if v.type_id is not None}
        for literal, target in t.discriminator_mapping.items():
            if target not in variant_ids:
                issues.append(
                    ValidationIssue(
                        path=f"types[{i}].discriminatorMapping.{literal}",
                        message=f"Discriminator value '{literal}' maps to '{target}', which is not a variant of '{t.name}'",
                        code="invalid_discriminator_mapping",
                    )
                )


def _check_operation_ids(schema: CanonicalSchema, issues: list[ValidationIssue]):
    seen: dict[str, int] = {}
    for i, endpoint in enumerate(schema.endpoints):
        op = endpoint.operation_id
        if op in seen:
            issues.append(
                ValidationIssue(
                    path=f"endpoints[{i}].operationId",
                    message=f"Operation id '{op}' is already used by endpoints[{seen[op]}]",
                    code="duplicate_operation_id",
                )
            )
        else:
            seen[op] = i


def _check_auth_references(schema: CanonicalSchema, issues: list[ValidationIssue]):
    seen: set[str] = set()
    for i, scheme in enumerate(schema.authentication):
        if scheme.id in seen:
            issues.append(
                ValidationIssue(
                    path=f"authentication[{i}].id",
                    message=f"Auth scheme id '{scheme.id}' is declared more than once",
                    code="duplicate_auth_scheme",
                )
            )
        seen.add(scheme.id)

    for i, endpoint in enumerate(schema.endpoints):
        for j, scheme_id in enumerate(endpoint.authentication):
            if scheme_id not in seen:
                issues.append(
                    ValidationIssue(
                        path=f"endpoints[{i}].authentication[{j}]",
                        message=f"Auth scheme '{scheme_id}' is not declared",
                        code="invalid_auth_reference",
                    )
                )
