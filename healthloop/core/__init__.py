from healthloop.core.models import Action, Diagnosis, Measurement, Symptom

__all__ = ["Action", "Diagnosis", "Measurement", "Symptom"]
