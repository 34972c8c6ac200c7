from __future__ import annotations


class EstimateError(ValueError):
    """Erreur d'usage du moteur de devis."""


class ValidationError(EstimateError):
    """Ajout de ligne refusé (quantité invalide, article introuvable)."""


class PreconditionError(EstimateError):
    """Validation du devis impossible (pas de client, aucune ligne, mauvaise étape)."""


class InvalidStatusTransition(EstimateError):
    pass


class NotFoundError(LookupError):
    pass
