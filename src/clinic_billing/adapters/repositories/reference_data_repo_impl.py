from collections.abc import Iterable

from clinic_billing.core.domain.repositories.reference_data_repository import (
    PatientContact,
    ReferenceDataRepository,
)
from plugins.django_interface.models import Clinic, Insurer, Patient


class ReferenceDataRepoImpl(ReferenceDataRepository):
    def patient_exists(self, patient_id: str) -> bool:
        return Patient.objects.filter(id=patient_id).exists()

    def clinic_exists(self, clinic_id: str) -> bool:
        return Clinic.objects.filter(id=clinic_id).exists()

    def insurer_exists(self, insurer_id: str) -> bool:
        return Insurer.objects.filter(id=insurer_id).exists()

    def get_patient_contact(self, patient_id: str) -> PatientContact | None:
        p = Patient.objects.filter(id=patient_id).first()
        if p is None:
            return None
        return PatientContact(name=p.name, email=p.email or None, phone=p.phone or None)

    def patient_names(self, patient_ids: Iterable[str]) -> dict[str, str]:
        return {str(pk): name for pk, name in Patient.objects.filter(id__in=list(patient_ids)).values_list("id", "name")}

    def insurer_names(self, insurer_ids: Iterable[str]) -> dict[str, str]:
        return {str(pk): name for pk, name in Insurer.objects.filter(id__in=list(insurer_ids)).values_list("id", "name")}
