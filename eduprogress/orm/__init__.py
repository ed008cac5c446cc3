from .base import Base

# Tenancy
from .school import School, SchoolStudent
from .student import Student, StudentRole

# Curriculum structure
from .course import Course, CourseLecture
from .lecture import Lecture
from .question import Question, QuestionType
from .assignment import Assignment, DifficultyLevel

# Completion tracking
from .question_completion import QuestionCompletion
from .assignment_completion import AssignmentCompletion
