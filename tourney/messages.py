"""User-facing messages, keyed by reason or event. Language follows config.LOCALE."""
from __future__ import annotations

import config

MESSAGES = {
    "en": {
        "full": "Tournament is full",
        "already registered": "You are already registered for this tournament",
        "deadline passed": "Registration deadline has passed",
        "tournament already occurred": "Tournament has already taken place",
        "registrations not open": "Registrations are not open for this tournament",
        "not full": "Tournament still has free places, register directly",
        "tournament not found": "Tournament not found",
        "registration not found": "No registration found for this tournament",
        "user not found": "User not found",
        "registered": "Registration successful",
        "waitlisted": "Added to the waiting list",
        "unregistered": "Unregistration successful",
        "tournament created": "Tournament created",
        "tournament updated": "Tournament updated",
        "tournament deleted": "Tournament deleted",
        "tournament has registrations": "Cannot delete a tournament with active registrations",
        "duplicate tournament": "A tournament with this name already exists on this date",
        "capacity out of range": "Capacity must be between {min} and {max} players",
        "capacity below players": "Capacity cannot be lower than the {current} registered players",
        "negative entry fee": "Entry fee cannot be negative",
        "invalid transition": "Cannot change tournament status from {current} to {target}",
        "invalid status": "Unknown status: {status}",
        "not seat holding": "Registration does not hold a place",
        "registration cancelled": "Registration is cancelled",
        "forbidden": "Not authorized to manage this tournament",
        "invalid data": "Invalid data",
        "server error": "Internal server error",
        "not authenticated": "Not authenticated",
        "organizer required": "Organizer access required",
        "admin required": "Admin access required",
        "invalid credentials": "Invalid username or password",
        "account disabled": "Account disabled",
        "account taken": "Username or email already in use",
        "password too short": "Password must be at least {min} characters",
        "account created": "Account created",
        "profile updated": "Profile updated",
        "cannot disable admin": "Cannot disable an administrator account",
        "invalid role": "Invalid role",
        "own role": "Cannot change your own role",
    },
    "fr": {
        "full": "Tournoi complet",
        "already registered": "Vous êtes déjà inscrit à ce tournoi",
        "deadline passed": "Date limite d'inscription dépassée",
        "tournament already occurred": "Tournoi déjà passé",
        "registrations not open": "Les inscriptions ne sont pas ouvertes pour ce tournoi",
        "not full": "Il reste des places, inscrivez-vous directement",
        "tournament not found": "Tournoi non trouvé",
        "registration not found": "Aucune inscription trouvée pour ce tournoi",
        "user not found": "Utilisateur non trouvé",
        "registered": "Inscription réussie",
        "waitlisted": "Ajouté à la liste d'attente",
        "unregistered": "Désinscription réussie",
        "tournament created": "Tournoi créé avec succès",
        "tournament updated": "Tournoi mis à jour avec succès",
        "tournament deleted": "Tournoi supprimé avec succès",
        "tournament has registrations": "Impossible de supprimer un tournoi avec des inscriptions",
        "duplicate tournament": "Un tournoi portant ce nom existe déjà à cette date",
        "capacity out of range": "Le nombre de joueurs doit être compris entre {min} et {max}",
        "capacity below players": "La capacité ne peut pas être inférieure aux {current} joueurs inscrits",
        "negative entry fee": "Les frais d'inscription ne peuvent pas être négatifs",
        "invalid transition": "Impossible de passer le tournoi de {current} à {target}",
        "invalid status": "Statut inconnu : {status}",
        "not seat holding": "L'inscription n'occupe pas de place",
        "registration cancelled": "L'inscription est annulée",
        "forbidden": "Accès refusé pour ce tournoi",
        "invalid data": "Données invalides",
        "server error": "Erreur interne du serveur",
        "not authenticated": "Authentification requise",
        "organizer required": "Accès réservé aux organisateurs",
        "admin required": "Accès réservé aux administrateurs",
        "invalid credentials": "Nom d'utilisateur ou mot de passe incorrect",
        "account disabled": "Compte désactivé",
        "account taken": "Nom d'utilisateur ou email déjà utilisé",
        "password too short": "Le mot de passe doit contenir au moins {min} caractères",
        "account created": "Compte créé",
        "profile updated": "Profil mis à jour",
        "cannot disable admin": "Impossible de désactiver un compte administrateur",
        "invalid role": "Rôle invalide",
        "own role": "Vous ne pouvez pas modifier votre propre rôle",
    },
}


def message(key: str, **kwargs) -> str:
    """Return the localized text for key, falling back to English, then to the key itself."""
    table = MESSAGES.get(config.LOCALE, MESSAGES["en"])
    text = table.get(key) or MESSAGES["en"].get(key, key)
    return text.format(**kwargs) if kwargs else text
