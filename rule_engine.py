"""
Rule engine for the maintenance validation service.

A maintenance submission is checked by a fixed catalog of independent
rules.  Each rule is a plain function that looks at the submission (and,
for the cross-record rules, at the history of accepted records) and
returns the error and warning messages it produced.  :func:`evaluate`
runs every rule, never stopping at the first failure, so a caller sees
the complete set of problems in one round trip.

Messages are worded in Spanish.  The match terms the rules look for come
from :mod:`vocabulary` and can be replaced per locale.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional, Sequence, Tuple
import uuid

import config
from models import NIL_UUID, MaintenanceRecord, MaintenanceSubmission, ValidationVerdict, utcnow
from vocabulary import Vocabulary, get_vocabulary

# Placeholder ids such as 00000000-0000-0000-0000-000000000001
PLACEHOLDER_PREFIX_BYTES = 15
PLACEHOLDER_MIN_ZERO_BYTES = 14


@dataclass(frozen=True)
class RuleSettings:
    vocabulary: Vocabulary
    future_tolerance: timedelta = timedelta(minutes=1)
    backfill_window: timedelta = timedelta(days=30)
    sequence_warning_days: int = 7
    description_min_length: int = 10
    description_max_length: int = 2000

    @classmethod
    def from_config(cls) -> "RuleSettings":
        return cls(
            vocabulary=get_vocabulary(config.LOCALE),
            future_tolerance=timedelta(minutes=config.FUTURE_TOLERANCE_MINUTES),
            backfill_window=timedelta(days=config.BACKFILL_WINDOW_DAYS),
            sequence_warning_days=config.SEQUENCE_WARNING_DAYS,
            description_min_length=config.DESCRIPTION_MIN_LENGTH,
            description_max_length=config.DESCRIPTION_MAX_LENGTH,
        )


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule may look at besides the submission itself."""

    history: Sequence[MaintenanceRecord]
    now: datetime
    settings: RuleSettings


@dataclass
class RuleOutcome:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


Rule = Callable[[MaintenanceSubmission, RuleContext], RuleOutcome]


def normalise_type(maintenance_type: Optional[str]) -> str:
    return (maintenance_type or "").strip().lower()


def is_placeholder_id(value: uuid.UUID) -> bool:
    """Return True for ids that look like hand-typed test values.

    Only the first 15 bytes are inspected, so an id whose last byte is the
    only non-zero one (a trivially incrementing counter) is caught.
    """
    prefix = value.bytes[:PLACEHOLDER_PREFIX_BYTES]
    return prefix.count(0) >= PLACEHOLDER_MIN_ZERO_BYTES


def check_basic_fields(submission: MaintenanceSubmission, ctx: RuleContext) -> RuleOutcome:
    out = RuleOutcome()
    vocab = ctx.settings.vocabulary

    if submission.equipment_id == NIL_UUID:
        out.errors.append("EquipoId es obligatorio.")
    if not submission.equipment_name.strip():
        out.errors.append("EquipoNombre es obligatorio.")
    if submission.user_id == NIL_UUID:
        out.errors.append("UsuarioId es obligatorio.")
    if not submission.user_name.strip():
        out.errors.append("UsuarioNombre es obligatorio.")

    if submission.maintenance_date is None:
        out.errors.append("FechaMantenimiento es obligatoria.")
    elif submission.maintenance_date > ctx.now + ctx.settings.future_tolerance:
        out.errors.append("FechaMantenimiento no puede ser futura.")

    if normalise_type(submission.maintenance_type) not in vocab.maintenance_types:
        out.errors.append(f"Tipo debe ser '{vocab.preventive}' o '{vocab.corrective}'.")

    description = submission.description
    if not description.strip() or len(description) < ctx.settings.description_min_length:
        out.errors.append(f"Descripcion debe tener al menos {ctx.settings.description_min_length} caracteres.")
    if len(description) > ctx.settings.description_max_length:
        out.errors.append(f"Descripcion demasiado larga (máx {ctx.settings.description_max_length}).")
    return out


def check_duplicates(submission: MaintenanceSubmission, ctx: RuleContext) -> RuleOutcome:
    """At most one accepted record per equipment and calendar day."""
    out = RuleOutcome()
    if submission.maintenance_date is None:
        return out
    day = submission.maintenance_date.date()
    existing = next(
        (
            r for r in ctx.history
            if r.equipment_id == submission.equipment_id and r.maintenance_date.date() == day
        ),
        None,
    )
    if existing is not None:
        out.errors.append(
            f"Ya existe un mantenimiento {existing.maintenance_type} para este equipo en la fecha "
            f"{day:%Y-%m-%d}. ID del mantenimiento existente: {existing.id}"
        )
    return out


def check_temporal_sequence(submission: MaintenanceSubmission, ctx: RuleContext) -> RuleOutcome:
    out = RuleOutcome()
    vocab = ctx.settings.vocabulary
    if submission.maintenance_date is None or normalise_type(submission.maintenance_type) != vocab.corrective:
        return out

    earlier_preventive = [
        r for r in ctx.history
        if r.equipment_id == submission.equipment_id
        and r.maintenance_type == vocab.preventive
        and r.maintenance_date < submission.maintenance_date
    ]
    if not earlier_preventive:
        return out

    last = max(earlier_preventive, key=lambda r: r.maintenance_date)
    # timedelta.days floors, which for a positive span is whole elapsed days
    elapsed_days = (submission.maintenance_date - last.maintenance_date).days
    if elapsed_days < ctx.settings.sequence_warning_days:
        out.warnings.append(
            "ADVERTENCIA: Mantenimiento correctivo muy pronto después del preventivo "
            f"(solo {elapsed_days} días). Considere revisar la efectividad del mantenimiento preventivo."
        )
    return out


def check_contextual_description(submission: MaintenanceSubmission, ctx: RuleContext) -> RuleOutcome:
    out = RuleOutcome()
    vocab = ctx.settings.vocabulary
    text = submission.description.lower()

    if normalise_type(submission.maintenance_type) == vocab.corrective:
        if not any(term in text for term in vocab.problem_terms):
            examples = ", ".join(vocab.problem_examples or vocab.problem_terms)
            out.errors.append(
                "Los mantenimientos correctivos deben especificar la naturaleza del problema. "
                f"Incluya palabras como: {examples}, etc."
            )

    if any(phrase in text for phrase in vocab.generic_phrases):
        out.errors.append("La descripción es demasiado genérica. Proporcione detalles específicos de las tareas realizadas.")
    return out


def check_temporal_limits(submission: MaintenanceSubmission, ctx: RuleContext) -> RuleOutcome:
    out = RuleOutcome()
    if submission.maintenance_date is None:
        return out
    earliest = ctx.now - ctx.settings.backfill_window
    if submission.maintenance_date < earliest:
        out.errors.append(
            f"No se pueden registrar mantenimientos con más de {ctx.settings.backfill_window.days} días de antigüedad. "
            f"Fecha mínima permitida: {earliest:%Y-%m-%d}"
        )
    return out


def check_identifier_sanity(submission: MaintenanceSubmission, ctx: RuleContext) -> RuleOutcome:
    out = RuleOutcome()
    if submission.equipment_id == NIL_UUID:
        out.errors.append("EquipoId no puede ser un GUID vacío.")
    if submission.user_id == NIL_UUID:
        out.errors.append("UsuarioId no puede ser un GUID vacío.")

    if is_placeholder_id(submission.equipment_id):
        out.errors.append("EquipoId parece ser un GUID de prueba. Use GUIDs reales en producción.")
    if is_placeholder_id(submission.user_id):
        out.errors.append("UsuarioId parece ser un GUID de prueba. Use GUIDs reales en producción.")
    return out


# Order matters only for message ordering
RULE_CATALOG: Tuple[Rule, ...] = (
    check_basic_fields,
    check_duplicates,
    check_temporal_sequence,
    check_contextual_description,
    check_temporal_limits,
    check_identifier_sanity,
)


def evaluate(
    submission: MaintenanceSubmission,
    history: Iterable[MaintenanceRecord],
    now: Optional[datetime] = None,
    settings: Optional[RuleSettings] = None,
    rules: Sequence[Rule] = RULE_CATALOG,
) -> ValidationVerdict:
    """Run every rule against ``submission`` and aggregate the messages.

    ``history`` is read once into a tuple, so a generator may be passed.
    With ``now`` given explicitly the result depends only on the arguments.
    """
    ctx = RuleContext(
        history=tuple(history),
        now=now or utcnow(),
        settings=settings or RuleSettings.from_config(),
    )
    errors: List[str] = []
    warnings: List[str] = []
    for rule in rules:
        outcome = rule(submission, ctx)
        errors.extend(outcome.errors)
        warnings.extend(outcome.warnings)
    return ValidationVerdict(is_valid=not errors, errors=errors, warnings=warnings)
