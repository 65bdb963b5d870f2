"""Read-only bundle of provider data handed to every rule evaluator."""
from typing import Optional

from pydantic import BaseModel, ConfigDict

from .alerts import TenantContext
from .domain import (
    AIAnalysisResult,
    BillingItem,
    Caregiver,
    EliminationRecord,
    FamilyMessage,
    Incident,
    Medication,
    Resident,
    VitalSign,
)


class EvaluationSnapshot(BaseModel):
    """Provider outputs for one tenant, assembled once per evaluation pass."""

    model_config = ConfigDict(frozen=True)

    context: TenantContext
    residents: tuple[Resident, ...] = ()
    medications: tuple[Medication, ...] = ()
    incidents: tuple[Incident, ...] = ()
    vital_signs: tuple[VitalSign, ...] = ()
    elimination_records: tuple[EliminationRecord, ...] = ()
    family_messages: tuple[FamilyMessage, ...] = ()
    monthly_fees: tuple[BillingItem, ...] = ()
    accounts_payable: tuple[BillingItem, ...] = ()
    accounts_receivable: tuple[BillingItem, ...] = ()
    caregivers: tuple[Caregiver, ...] = ()
    ai_analysis: Optional[AIAnalysisResult] = None

    def resident(self, resident_id: Optional[str]) -> Optional[Resident]:
        """Look up a resident by id."""
        if resident_id is None:
            return None
        for resident in self.residents:
            if resident.id == resident_id:
                return resident
        return None

    def resident_name(self, resident_id: Optional[str]) -> Optional[str]:
        resident = self.resident(resident_id)
        return resident.name if resident else None


# Collections a provider must supply, in the order they are fetched
SNAPSHOT_COLLECTIONS = (
    "residents",
    "medications",
    "incidents",
    "vital_signs",
    "elimination_records",
    "family_messages",
    "monthly_fees",
    "accounts_payable",
    "accounts_receivable",
    "caregivers",
)
