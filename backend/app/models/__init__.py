from app.models.user import User, UserRole
from app.models.template import (Difficulty, TemplateAlternative, TemplateDay, TemplateItem,
                                 WorkoutTemplate)
from app.models.program import ClientDay, ClientItem, ClientProgram, ExerciseAlternative, ProgramStatus
from app.models.session import WorkoutSession
from app.models.set_log import SetLog
from app.models.exercise_note import ExerciseNote
from app.models.set_weight import SetWeightPreference
from app.models.exercise_feedback import ExerciseFeedback, FeedbackValue

__all__ = [
    "User", "UserRole",
    "WorkoutTemplate", "TemplateDay", "TemplateItem", "TemplateAlternative", "Difficulty",
    "ClientProgram", "ClientDay", "ClientItem", "ExerciseAlternative", "ProgramStatus",
    "WorkoutSession", "SetLog", "ExerciseNote", "SetWeightPreference",
    "ExerciseFeedback", "FeedbackValue",
]
