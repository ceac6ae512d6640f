# backend/gestimmo/services/error_messages.py
"""
User-facing wording for error responses.

Handlers raise short English messages; this module rewrites the ones the
front-ends show to people into French. Unknown messages are returned as-is,
empty or generic ones fall back to a per-status sentence.
"""
from __future__ import annotations

from typing import Callable

Rule = tuple[Callable[[str], bool], str]


def _has(*needles: str) -> Callable[[str], bool]:
    return lambda lower: all(n in lower for n in needles)


def _equals(expected: str) -> Callable[[str], bool]:
    return lambda lower: lower == expected


FALLBACK_BY_STATUS: dict[int, str] = {
    400: "Demande invalide. Vérifiez les informations saisies puis réessayez.",
    401: "Session expirée ou invalide. Reconnectez-vous pour continuer.",
    403: "Action non autorisée pour votre compte.",
    404: "Élément introuvable. Rafraîchissez la page puis réessayez.",
    409: "Conflit détecté. Cette opération existe déjà ou n'est plus possible.",
    422: "Données invalides. Corrigez les champs en erreur puis réessayez.",
    429: "Trop de tentatives. Patientez un instant avant de recommencer.",
    500: "Erreur serveur temporaire. Réessayez dans quelques instants.",
}
DEFAULT_FALLBACK = "Une erreur est survenue. Veuillez réessayer."

# Order matters: the first matching rule wins, so specific phrases come
# before the shorter phrases they contain.
RULES: list[Rule] = [
    (_has("unauthorized", "no token"), "Votre session n'a pas été détectée. Connectez-vous puis réessayez."),
    (_has("unauthorized", "invalid token"), "Votre session a expiré ou est invalide. Reconnectez-vous pour continuer."),
    (_has("unauthorized", "no user"), "Session utilisateur introuvable. Veuillez vous reconnecter."),
    (
        _has("forbidden: this action requires one of the following roles"),
        "Vous n'avez pas les permissions nécessaires pour cette action. Utilisez un compte autorisé.",
    ),
    (_equals("forbidden"), "Action refusée : vous n'avez pas les droits nécessaires."),
    (_has("tenant profile not found"), "Profil locataire introuvable. Complétez votre profil puis réessayez."),
    (_has("property not found"), "Bien immobilier introuvable. Rafraîchissez la liste puis réessayez."),
    (_has("contract not found"), "Contrat introuvable. Vérifiez l'élément sélectionné puis réessayez."),
    (_has("payment not found"), "Paiement introuvable. Rafraîchissez l'écran puis réessayez."),
    (_has("tenant not found"), "Locataire introuvable. Rafraîchissez la liste puis réessayez."),
    (_has("maintenance request not found"), "Demande de maintenance introuvable. Rafraîchissez la page puis réessayez."),
    (_has("notification not found"), "Notification introuvable. Rafraîchissez la page puis réessayez."),
    (_has("missing file upload"), "Aucun fichier reçu. Ajoutez un fichier puis réessayez."),
    (_has("only pdf files are allowed"), "Seuls les fichiers PDF sont autorisés."),
    (
        _has("contract template is missing for this property"),
        "Le modèle de contrat de ce bien est indisponible. Contactez le bailleur.",
    ),
    (_has("unsupported mimetype"), "Format de fichier non supporté. Utilisez une image PNG, JPG ou WEBP."),
    (_has("missing entity_type or entity_id"), "Le type et l'identifiant de l'élément sont requis."),
    (_has("missing document metadata"), "Informations du document manquantes."),
    (_has("invalid email address"), "Adresse e-mail invalide. Vérifiez le format puis réessayez."),
    (_has("password must be at least"), "Mot de passe trop court. Utilisez au moins 6 caractères."),
    (_has("password is required"), "Mot de passe requis. Renseignez votre mot de passe puis réessayez."),
    (_has("full name is required"), "Nom complet requis. Renseignez votre nom et prénom."),
    (
        _has("invalid role for public registration"),
        "Rôle invalide pour l'inscription publique. Rôles autorisés : locataire, gestionnaire ou admin.",
    ),
    (_has("already registered"), "Ce compte existe déjà. Connectez-vous ou utilisez une autre adresse e-mail."),
    (_has("invalid credentials"), "Identifiants invalides. Vérifiez votre e-mail et votre mot de passe."),
    (_has("profile not found"), "Profil utilisateur introuvable. Reconnectez-vous ou contactez le support."),
    (_has("refresh token is required"), "Session expirée. Reconnectez-vous pour continuer."),
    (
        _has("no active contract found for this tenant and property"),
        "Aucun contrat actif trouvé pour ce bien.",
    ),
    (
        _has("no active contract found for this tenant"),
        "Aucun contrat actif trouvé. Vous devez avoir un contrat actif pour créer un paiement.",
    ),
    (_has("contract_id is required"), "Le contrat cible est requis pour effectuer ce paiement."),
    (
        _has("due_date is required and must be a valid date"),
        "Date d'échéance invalide. Sélectionnez une date valide puis réessayez.",
    ),
    (
        _has("manual payment can only be created for the next month"),
        "Paiement manuel autorisé uniquement pour le mois prochain.",
    ),
    (_has("invalid payment amount"), "Montant invalide. Saisissez un montant strictement supérieur à zéro."),
    (
        _has("a payment already exists for this contract and month"),
        "Un paiement existe déjà pour ce contrat ce mois-ci. Vérifiez la liste avant de recommencer.",
    ),
    (_has("permission denied"), "Action bloquée par les permissions de sécurité. Contactez un administrateur."),
    (
        _has("this property is not available for rent"),
        "Ce bien n'est plus disponible à la location. Choisissez un autre bien.",
    ),
    (_has("property is not available"), "Ce bien est indisponible actuellement. Choisissez un bien disponible."),
    (
        _has("contract is not in draft state"),
        "Ce contrat ne peut plus être signé car il n'est plus à l'état brouillon.",
    ),
    (
        _has("payment is allowed only for properties with a validated contract"),
        "Le paiement est autorisé uniquement pour un contrat validé.",
    ),
    (_has("validated payments cannot be deleted"), "Un paiement déjà validé ne peut pas être supprimé."),
    (_has("only active contracts can be terminated"), "Seuls les contrats actifs peuvent être résiliés."),
    (
        _has("tenants can only cancel their own requests"),
        "Vous pouvez annuler uniquement vos propres demandes de maintenance.",
    ),
    (
        _has("email, password and full_name are required"),
        "Champs obligatoires manquants : e-mail, mot de passe et nom complet.",
    ),
    (_has("invalid role"), "Rôle invalide. Utilisez tenant, manager ou admin selon votre besoin."),
    (_has("duplicate value violates a unique constraint"), "Cet élément existe déjà."),
]


def fallback_by_status(status_code: int) -> str:
    return FALLBACK_BY_STATUS.get(int(status_code), DEFAULT_FALLBACK)


def translate_error_message(raw_message: object, status_code: int) -> str:
    message = str(raw_message or "").strip()
    if not message:
        return fallback_by_status(status_code)

    lower = message.lower()
    if "request failed with status" in lower:
        return fallback_by_status(status_code)

    for matches, replacement in RULES:
        if matches(lower):
            return replacement
    return message
