from .app import QuestionView, QuizApp

__all__ = ["QuizApp", "QuestionView"]
