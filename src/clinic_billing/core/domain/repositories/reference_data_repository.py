from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PatientContact:
    name: str
    email: str | None = None
    phone: str | None = None


class ReferenceDataRepository(ABC):
    """Leitura de cadastros mantidos fora do faturamento (paciente, clínica, convênio)."""

    @abstractmethod
    def patient_exists(self, patient_id: str) -> bool:
        ...

    @abstractmethod
    def clinic_exists(self, clinic_id: str) -> bool:
        ...

    @abstractmethod
    def insurer_exists(self, insurer_id: str) -> bool:
        ...

    @abstractmethod
    def get_patient_contact(self, patient_id: str) -> PatientContact | None:
        ...

    @abstractmethod
    def patient_names(self, patient_ids: Iterable[str]) -> dict[str, str]:
        ...

    @abstractmethod
    def insurer_names(self, insurer_ids: Iterable[str]) -> dict[str, str]:
        ...
