from typing import Dict, Optional, Sequence

from storefront.intake.questions import QUESTIONS, Question


class IntakeWizard:
    """
    Questionnaire linéaire, une question à la fois, sans branchement.
    back() ne fait que reculer la position: les réponses déjà données sont conservées.
    """

    def __init__(self, questions: Sequence[Question] = QUESTIONS):
        if not questions:
            raise ValueError("questionnaire vide")
        self.questions = tuple(questions)
        self.position = 0
        self.answers: Dict[str, str] = {}

    @property
    def current(self) -> Question:
        return self.questions[self.position]

    @property
    def is_last(self) -> bool:
        return self.position == len(self.questions) - 1

    @property
    def is_complete(self) -> bool:
        return all(q.id in self.answers for q in self.questions)

    @property
    def progress(self) -> float:
        return (self.position + 1) / len(self.questions)

    def selected(self) -> Optional[str]:
        return self.answers.get(self.current.id)

    def answer(self, option: str) -> bool:
        """Enregistre la réponse à la question courante puis avance. True une fois la dernière question répondue."""
        question = self.current
        if option not in question.options:
            raise ValueError(f"{question.id}: option inconnue {option!r}")
        self.answers[question.id] = option
        if self.is_last:
            return self.is_complete
        self.position += 1
        return False

    def back(self) -> None:
        if self.position > 0:
            self.position -= 1

    def responses(self) -> Dict[str, str]:
        return {q.id: self.answers[q.id] for q in self.questions if q.id in self.answers}
