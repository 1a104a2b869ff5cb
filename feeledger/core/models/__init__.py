from feeledger.core.models.batch import Batch
from feeledger.core.models.student import Student
from feeledger.core.models.academic_period import AcademicPeriod
from feeledger.core.models.fee_type import FeeComponent, FeeType
from feeledger.core.models.student_fee import StudentFee
from feeledger.core.models.payment import Payment

__all__ = [
    "AcademicPeriod",
    "Batch",
    "FeeComponent",
    "FeeType",
    "Payment",
    "Student",
    "StudentFee",
]
