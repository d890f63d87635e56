from horarios.models.academic_unit import AcademicUnit  # noqa: F401
from horarios.models.activity_log import ActivityLog  # noqa: F401
from horarios.models.availability import AvailabilityOrigin, TeacherAvailability  # noqa: F401
from horarios.models.career import Career, Cycle  # noqa: F401
from horarios.models.group import Group, GroupSubject  # noqa: F401
from horarios.models.period import Period, Shift, TimeBlock  # noqa: F401
from horarios.models.restriction import Restriction, RestrictionKind  # noqa: F401
from horarios.models.room import Classroom, RoomType  # noqa: F401
from horarios.models.schedule_assignment import AssignmentOrigin, ScheduleAssignment  # noqa: F401
from horarios.models.subject import Subject, SubjectCareer  # noqa: F401
from horarios.models.teacher import ContractType, Specialty, Teacher  # noqa: F401
