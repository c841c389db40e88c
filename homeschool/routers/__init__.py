from . import (
    assignments, auth, calendar, expenses, health, lesson_plans, report_cards, students, subjects, tasks,
    teachers,
)

__all__ = [
    "assignments",
    "auth",
    "calendar",
    "expenses",
    "health",
    "lesson_plans",
    "report_cards",
    "students",
    "subjects",
    "tasks",
    "teachers",
]
