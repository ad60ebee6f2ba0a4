"""In-memory application state, seeded with demo data. Nothing is persisted."""

import itertools
import threading

from models import (
    AdherenceDay,
    Exam,
    ExamStatus,
    MedicalRecord,
    Medication,
    MedicationStatus,
    NewExam,
    NewMedication,
    ServiceRequest,
    ServiceType,
)


class DuplicatePersonError(Exception):
    """The person is already in the caregiver list."""


class NotFoundError(Exception):
    """No record with the given id."""


def _seed_medications() -> list[Medication]:
    return [
        Medication(id=1, name="Lisinopril", dosage="10mg", time="08:00", status=MedicationStatus.TAKEN),
        Medication(id=2, name="Metformin", dosage="500mg", time="09:00", status=MedicationStatus.DUE),
        Medication(id=3, name="Atorvastatin", dosage="20mg", time="20:00", status=MedicationStatus.OVERDUE),
    ]


def _seed_family_medications() -> list[Medication]:
    return [
        Medication(id=4, name="Amlodipine", dosage="5mg", time="08:00", status=MedicationStatus.TAKEN, owner="Maria Silva"),
        Medication(id=5, name="Simvastatin", dosage="40mg", time="21:00", status=MedicationStatus.DUE, owner="Maria Silva"),
        Medication(id=6, name="Gliclazide", dosage="30mg", time="08:30", status=MedicationStatus.OVERDUE, owner="João Pereira"),
    ]


def _seed_exams() -> list[Exam]:
    return [
        Exam(id=1, name="Ressonância Magnética", date="2024-08-15", time="14:00", location="Clínica Imagem",
             preparation="Jejum de 4 horas.", status=ExamStatus.SCHEDULED),
        Exam(id=2, name="Exame de Sangue", date="2024-07-20", time="07:30", location="Laboratório Central",
             preparation="Jejum de 12 horas.", status=ExamStatus.COMPLETED),
        Exam(id=3, name="Ecocardiograma", date="2024-06-10", time="10:00", location="Hospital do Coração",
             preparation="Nenhum preparo especial.", status=ExamStatus.COMPLETED),
    ]


def _seed_records() -> list[MedicalRecord]:
    return [
        MedicalRecord(id=1, type="exam", title="Exame de Sangue Completo", date="2023-10-15",
                      details="Colesterol um pouco alto."),
        MedicalRecord(id=2, type="appointment", title="Consulta Cardiologista", date="2023-10-05",
                      details="Dr. Ricardo Lima"),
        MedicalRecord(id=3, type="exam", title="Raio-X do Tórax", date="2023-08-20",
                      details="Resultados normais."),
        MedicalRecord(id=4, type="appointment", title="Consulta Clínico Geral", date="2023-07-01",
                      details="Check-up anual."),
    ]


SERVICE_REQUESTS: list[ServiceRequest] = [
    ServiceRequest(id=1, requester="Carlos Mendes", avatar="https://picsum.photos/id/1005/100/100",
                   type=ServiceType.RIDE, origin="Rua das Flores, 123", destination="Clínica Pro-Vida",
                   time="14:30", value=25.00, rating=4.8),
    ServiceRequest(id=2, requester="Ana Beatriz", avatar="https://picsum.photos/id/1011/100/100",
                   type=ServiceType.COMPANION, origin="Avenida Principal, 456", destination="Hospital Central",
                   time="10:00", value=40.00, rating=4.9),
    ServiceRequest(id=3, requester="Lúcia Ferreira", avatar="https://picsum.photos/id/1027/100/100",
                   type=ServiceType.RIDE, origin="Praça da Matriz, 789", destination="Laboratório Exame Certo",
                   time="08:00", value=18.50, rating=4.5),
    ServiceRequest(id=4, requester="Roberto Alves", avatar="https://picsum.photos/id/1040/100/100",
                   type=ServiceType.RIDE_AND_COMPANION, origin="Alameda dos Anjos, 101",
                   destination="Hospital das Clínicas", time="09:00", value=75.00, rating=4.7),
]

ADHERENCE_WEEK: list[AdherenceDay] = [
    AdherenceDay(day="Seg", taken=3, missed=0),
    AdherenceDay(day="Ter", taken=2, missed=1),
    AdherenceDay(day="Qua", taken=3, missed=0),
    AdherenceDay(day="Qui", taken=3, missed=0),
    AdherenceDay(day="Sex", taken=2, missed=1),
    AdherenceDay(day="Sáb", taken=3, missed=0),
    AdherenceDay(day="Dom", taken=2, missed=1),
]


class CompanionStore:
    """Lists behind every screen of the app, plus the logged-in flag."""

    def __init__(self):
        self._lock = threading.Lock()
        self._ids = itertools.count(100)
        self.logged_in = False
        self._medications = _seed_medications()
        self._family_medications = _seed_family_medications()
        self._cared_people = list(dict.fromkeys(m.owner for m in self._family_medications))
        self._exams = sorted(_seed_exams(), key=lambda e: e.date)
        self._records = sorted(_seed_records(), key=lambda r: r.date, reverse=True)

    # --- session ---

    def login(self) -> None:
        self.logged_in = True

    def logout(self) -> None:
        self.logged_in = False

    # --- medications ---

    def medications(self) -> list[Medication]:
        with self._lock:
            return list(self._medications)

    def family_medications(self) -> dict[str, list[Medication]]:
        with self._lock:
            return {
                person: [m for m in self._family_medications if m.owner == person]
                for person in self._cared_people
            }

    def add_medication(self, new: NewMedication) -> Medication:
        with self._lock:
            med = Medication(
                id=next(self._ids),
                name=new.name,
                dosage=new.dosage,
                time=new.time,
                status=MedicationStatus.DUE,
                owner=new.owner or None,
            )
            if med.owner:
                self._family_medications.append(med)
                if med.owner not in self._cared_people:
                    self._cared_people.append(med.owner)
            else:
                self._medications.append(med)
            return med

    def mark_taken(self, medication_id: int) -> Medication:
        with self._lock:
            for meds in (self._medications, self._family_medications):
                for i, med in enumerate(meds):
                    if med.id == medication_id:
                        meds[i] = med.model_copy(update={"status": MedicationStatus.TAKEN})
                        return meds[i]
        raise NotFoundError(f"Medication {medication_id} not found")

    def cared_people(self) -> list[str]:
        with self._lock:
            return list(self._cared_people)

    def add_person(self, name: str) -> str:
        name = name.strip()
        if not name:
            raise ValueError("Por favor, insira um nome.")
        with self._lock:
            if name in self._cared_people:
                raise DuplicatePersonError("Essa pessoa já está na sua lista.")
            self._cared_people.append(name)
        return name

    # --- exams ---

    def exams(self) -> list[Exam]:
        with self._lock:
            return list(self._exams)

    def add_exam(self, new: NewExam) -> Exam:
        with self._lock:
            exam = Exam(id=next(self._ids), status=ExamStatus.SCHEDULED, **new.model_dump())
            self._exams.append(exam)
            self._exams.sort(key=lambda e: e.date)
            return exam

    # --- history ---

    def records(self) -> list[MedicalRecord]:
        with self._lock:
            return list(self._records)

    def add_exam_record(self, title: str, date: str, image_url: str | None = None) -> MedicalRecord:
        with self._lock:
            record = MedicalRecord(id=next(self._ids), type="exam", title=title, date=date, image_url=image_url)
            self._records.insert(0, record)
            self._records.sort(key=lambda r: r.date, reverse=True)
            return record
