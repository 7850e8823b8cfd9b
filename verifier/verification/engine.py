"""
Validation engine.

Compiles a ProfileDescription into a CompiledProfile once, then validates
flat input mappings against it. Type checking and lax coercion of the
declared field types is delegated to pydantic; types pydantic cannot build
a schema for are checked with isinstance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import TypeAdapter, ValidationError
from pydantic.errors import PydanticSchemaGenerationError

from verifier.contracts.profile import Coercion, FieldRule, ProfileDescription
from verifier.contracts.verification import FieldResult, FieldStatus, VerificationResult
from verifier.errors import InvalidProfile
from verifier.logging_config import get_logger
from verifier.verification.filters import FilterFn, apply_filters, resolve_filters

logger = get_logger(__name__)


class _TypeMismatch(ValueError):
    pass


TypeCheck = Callable[[Any], Any]


def _accept_any(value: Any) -> Any:
    return value


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)


def build_type_check(action: str, name: str, tp: Any) -> TypeCheck:
    if tp is None:
        return _accept_any
    if isinstance(tp, str):
        # no forward references: profiles are built from live types
        raise InvalidProfile(action, f"field '{name}': type must be a type, got string {tp!r}")

    try:
        adapter = TypeAdapter(tp)
    except PydanticSchemaGenerationError:
        if not isinstance(tp, type):
            raise InvalidProfile(action, f"field '{name}': unsupported type {tp!r}")

        def _isinstance(value: Any) -> Any:
            if isinstance(value, tp):
                return value
            raise _TypeMismatch(f"Input should be an instance of {_type_name(tp)}")

        return _isinstance

    def _validate(value: Any) -> Any:
        try:
            return adapter.validate_python(value)
        except ValidationError as e:
            errs = e.errors()
            raise _TypeMismatch(errs[0]["msg"] if errs else str(e)) from e

    return _validate


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and value == "":
        return True
    if isinstance(value, (list, tuple)) and not value:
        return True
    return False


@dataclass
class CompiledField:
    name: str
    rule: FieldRule
    filters: List[FilterFn]
    check: TypeCheck
    dependent: Optional["CompiledProfile"] = None

    def _coerce(self, value: Any) -> Any:
        c = self.rule.coercion
        if isinstance(c, Coercion):
            if not c.applies(value):
                raise _TypeMismatch(f"cannot coerce {type(value).__name__}")
            return c.via(value)
        return c(value)

    def check_type(self, value: Any) -> Any:
        try:
            return self.check(value)
        except _TypeMismatch:
            if self.rule.coercion is None:
                raise
        try:
            coerced = self._coerce(value)
        except _TypeMismatch:
            raise
        except Exception as e:
            raise _TypeMismatch(f"coercion failed: {e}") from e
        return self.check(coerced)

    def check_length(self, value: Any) -> Optional[str]:
        if not isinstance(value, (str, list, tuple)):
            return None
        n = len(value)
        if self.rule.min_length is not None and n < self.rule.min_length:
            return f"must be at least {self.rule.min_length} long"
        if self.rule.max_length is not None and n > self.rule.max_length:
            return f"must be at most {self.rule.max_length} long"
        return None


@dataclass
class CompiledProfile:
    action: str
    fields: List[CompiledField] = field(default_factory=list)

    def _check_field(self, cf: CompiledField, values: Mapping[str, Any]) -> Optional[FieldResult]:
        raw = values.get(cf.name)
        value = apply_filters(raw, cf.filters)

        if _is_empty(value):
            if cf.rule.has_default:
                return FieldResult(cf.name, FieldStatus.VALID, value=cf.rule.default, original_value=raw)
            if cf.rule.required:
                return FieldResult(cf.name, FieldStatus.MISSING, original_value=raw, reason="required")
            return None

        bad_len = cf.check_length(value)
        if bad_len:
            return FieldResult(cf.name, FieldStatus.INVALID, original_value=raw, reason=bad_len)

        try:
            value = cf.check_type(value)
        except _TypeMismatch as e:
            return FieldResult(cf.name, FieldStatus.WRONG_TYPE, original_value=raw, reason=str(e))

        return FieldResult(cf.name, FieldStatus.VALID, value=value, original_value=raw)

    def _post_check(self, cf: CompiledField, results: Dict[str, FieldResult]) -> FieldResult:
        current = results[cf.name]
        snapshot = VerificationResult(fields=results, scope=self.action)
        try:
            ok = cf.rule.post_check(snapshot)
        except Exception as e:
            logger.warning("post_check for %s.%s raised: %s", self.action, cf.name, e)
            return FieldResult(
                cf.name, FieldStatus.INVALID, original_value=current.original_value, reason=f"post_check raised: {e}"
            )
        if ok:
            return current
        return FieldResult(
            cf.name, FieldStatus.INVALID, original_value=current.original_value, reason="post_check failed"
        )

    def validate(self, values: Mapping[str, Any]) -> VerificationResult:
        values = values or {}
        results: Dict[str, FieldResult] = {}

        for cf in self.fields:
            fr = self._check_field(cf, values)
            if fr is not None:
                results[cf.name] = fr

        for cf in self.fields:
            fr = results.get(cf.name)
            if cf.dependent is None or fr is None or not fr.valid:
                continue
            for name, dep in cf.dependent.validate(values).fields.items():
                results.setdefault(name, dep)

        for cf in self.fields:
            fr = results.get(cf.name)
            if cf.rule.post_check is None or fr is None or not fr.valid:
                continue
            results[cf.name] = self._post_check(cf, results)

        return VerificationResult(fields=results, scope=self.action)


class ValidationEngine:
    """
    Compiles profiles. Stateless; one instance can serve every controller.
    """

    def compile(self, action: str, description: ProfileDescription) -> CompiledProfile:
        compiled = CompiledProfile(action=action)
        for name, rule in description.fields.items():
            try:
                filters = resolve_filters(tuple(description.filters) + tuple(rule.filters))
            except KeyError as e:
                raise InvalidProfile(action, f"field '{name}': unknown filter {e}") from e
            compiled.fields.append(
                CompiledField(
                    name=name,
                    rule=rule,
                    filters=filters,
                    check=build_type_check(action, name, rule.type),
                    dependent=self.compile(action, rule.dependent) if rule.dependent is not None else None,
                )
            )
        logger.debug("compiled profile %s (%d fields)", action, len(compiled.fields))
        return compiled
