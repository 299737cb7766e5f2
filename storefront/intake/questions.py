"""
Questionnaire d'accueil post-achat (une seule fois par utilisateur).
Toutes les questions sont à choix unique.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple


@dataclass(frozen=True)
class Question:
    id: str
    question: str
    options: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "question": self.question, "type": "single", "options": list(self.options)}


QUESTIONS: Tuple[Question, ...] = (
    Question("music_experience", "How long have you been creating music/podcasts?",
             ("Less than 1 year", "1-3 years", "3-5 years", "5+ years")),
    Question("primary_genre", "What's your primary music genre?",
             ("Hip-Hop/Rap", "Pop", "R&B", "Rock", "Electronic/EDM", "Country", "Indie", "Other")),
    Question("age_range", "What's your age range?",
             ("16-20", "21-25", "26-30", "31-35", "36+")),
    Question("spotify_releases", "How many songs have you released on Spotify?",
             ("This is my first", "2-5 songs", "6-15 songs", "16+ songs")),
    Question("promotion_platform", "Where do you primarily promote your music?",
             ("Instagram", "TikTok", "YouTube", "Twitter / X", "Facebook", "I don't promote much")),
    Question("online_activity_time", "What time of day are you most active online?",
             ("Morning (6AM-12PM)", "Afternoon (12PM-6PM)", "Evening (6PM-12AM)", "Late night (12AM-6AM)")),
)

QUESTIONS_BY_ID = {q.id: q for q in QUESTIONS}

def validate_responses(responses: Mapping[str, Any]) -> List[str]:
    """Retourne la liste des erreurs (vide si chaque question a une option valide, sans clé en trop)."""
    if not isinstance(responses, Mapping):
        return ["Réponses invalides"]
    errors = []
    for q in QUESTIONS:
        answer = responses.get(q.id)
        if answer is None or answer == "":
            errors.append(f"{q.id}: réponse manquante")
        elif answer not in q.options:
            errors.append(f"{q.id}: option inconnue")
    for key in responses:
        if key not in QUESTIONS_BY_ID:
            errors.append(f"{key}: question inconnue")
    return errors
