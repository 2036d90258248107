"""Card text per locale. Unknown locales and keys fall back to en-US."""

DEFAULT_LOCALE = "en-US"

STRINGS = {
    "en-US": {
        "WelcomeCardTitle": "Welcome to Timesheet",
        "WelcomeCardSubtitle": "Your team's timesheet app",
        "WelcomeCardIntro": "Log the hours you spend on project tasks every day and submit them to your manager for approval. I will remind you to fill your timesheet and let you know when your manager approves or rejects it.",
        "FillTimesheetButton": "Fill timesheet",
        "FillTimesheetReminderCardTitle": "Reminder: please fill your timesheet",
        "TimesheetRequestsCardTitle": "Timesheet requests",
        "ActionRequiredSubTitle": "Action required",
        "RequestsReminderCardText": "You have {0} pending timesheet request(s) to review.",
        "ViewRequestButton": "View requests",
        "TimesheetApprovedCardTitle": "Timesheet approved",
        "TimesheetRejectedCardTitle": "Timesheet rejected",
        "ApprovedStatus": "Approved",
        "RejectedStatus": "Rejected",
        "ProjectLabel": "Project",
        "HoursLabel": "Hours",
        "CommentLabel": "Comment",
        "ViewTimesheetButtonText": "View timesheet",
    },
    "fr-FR": {
        "WelcomeCardTitle": "Bienvenue dans Timesheet",
        "WelcomeCardSubtitle": "L'application de feuilles de temps de votre équipe",
        "WelcomeCardIntro": "Saisissez chaque jour les heures passées sur les tâches de vos projets et soumettez-les à votre responsable. Je vous rappellerai de remplir votre feuille de temps et vous préviendrai lorsqu'elle sera approuvée ou rejetée.",
        "FillTimesheetButton": "Remplir la feuille de temps",
        "FillTimesheetReminderCardTitle": "Rappel : veuillez remplir votre feuille de temps",
        "TimesheetRequestsCardTitle": "Demandes de feuilles de temps",
        "ActionRequiredSubTitle": "Action requise",
        "RequestsReminderCardText": "Vous avez {0} demande(s) de feuille de temps en attente.",
        "ViewRequestButton": "Voir les demandes",
        "TimesheetApprovedCardTitle": "Feuille de temps approuvée",
        "TimesheetRejectedCardTitle": "Feuille de temps rejetée",
        "ApprovedStatus": "Approuvée",
        "RejectedStatus": "Rejetée",
        "ProjectLabel": "Projet",
        "HoursLabel": "Heures",
        "CommentLabel": "Commentaire",
        "ViewTimesheetButtonText": "Voir la feuille de temps",
    },
}


def get_string(key: str, locale: str = DEFAULT_LOCALE, *args) -> str:
    table = STRINGS.get(locale) or STRINGS[DEFAULT_LOCALE]
    text = table.get(key) or STRINGS[DEFAULT_LOCALE].get(key, key)
    return text.format(*args) if args else text
