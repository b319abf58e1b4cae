"""
Locale-specific match terms used by the description and type rules.

Rule logic never hard-codes these strings; it receives a :class:`Vocabulary`
so another locale can be swapped in without touching the rules.
"""
from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class Vocabulary:
    preventive: str
    corrective: str
    # Words that name a failure; corrective descriptions must use one
    problem_terms: Tuple[str, ...]
    # Boilerplate that says nothing about the work performed
    generic_phrases: Tuple[str, ...]
    # Hint shown when a corrective description names no problem
    problem_examples: Tuple[str, ...] = ()

    @property
    def maintenance_types(self) -> Tuple[str, str]:
        return (self.preventive, self.corrective)


SPANISH = Vocabulary(
    preventive="preventivo",
    corrective="correctivo",
    problem_terms=(
        "falla", "fallo", "problema", "avería", "averia", "error",
        "defecto", "daño", "roto", "descompuesto", "mal funcionamiento",
    ),
    generic_phrases=(
        "mantenimiento general", "revision general", "mantenimiento rutinario",
        "revision rutinaria", "mantenimiento normal",
    ),
    problem_examples=("falla", "problema", "avería", "error", "defecto"),
)

ENGLISH = Vocabulary(
    preventive="preventive",
    corrective="corrective",
    problem_terms=(
        "failure", "fault", "problem", "breakdown", "error",
        "defect", "damage", "broken", "malfunction",
    ),
    generic_phrases=(
        "general maintenance", "general check", "routine maintenance",
        "routine check", "routine revision", "normal maintenance",
    ),
    problem_examples=("failure", "fault", "problem", "breakdown", "defect"),
)

VOCABULARIES: Dict[str, Vocabulary] = {"es": SPANISH, "en": ENGLISH}


def get_vocabulary(locale: str) -> Vocabulary:
    """Return the vocabulary registered for ``locale``.

    Raises ``KeyError`` for unknown locales instead of silently falling back.
    """
    try:
        return VOCABULARIES[locale.lower()]
    except KeyError:
        raise KeyError(f"Unknown maintenance locale '{locale}'; expected one of {sorted(VOCABULARIES)}") from None
