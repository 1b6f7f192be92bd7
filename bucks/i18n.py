LANGUAGES = ("en", "es")
DEFAULT_LANG = "en"

MESSAGES = {
    "en": {
        "english": "English",
        "spanish": "Spanish",
        "title.subscriptions": "Subscriptions",
        "title.income_streams": "Income streams",
        "title.fixed_expenses": "Fixed expenses",
        "title.punctual_income": "Punctual income",
        "title.stats": "Statistics",
        "table.concept": "Concept",
        "table.cost": "Cost",
        "table.recurrence": "Recurrence",
        "table.date": "Date",
        "stats.initial_savings": "Initial savings",
        "stats.avg_cost_month": "Average cost per month",
        "stats.cost_year": "Cost per year",
        "stats.total_cost_til_eoy": "Total cost until the end of the year",
        "stats.total_income_til_eoy": "Total income until the end of the year",
        "stats.balance_eoy": "Balance at the end of the year",
        "stats.balance_eom": "Balance at the end of each month",
        "recurrence.day": "Each {days} days",
        "recurrence.month": "Each {months} months on day {day}",
        "recurrence.year": "Each {years} years on day {day} of month {month}",
        "kind.day": "Day",
        "kind.month": "Month",
        "kind.year": "Year",
    },
    "es": {
        "english": "Inglés",
        "spanish": "Español",
        "title.subscriptions": "Suscripciones",
        "title.income_streams": "Fuentes de ingresos",
        "title.fixed_expenses": "Gastos fijos",
        "title.punctual_income": "Ingresos puntuales",
        "title.stats": "Estadísticas",
        "table.concept": "Concepto",
        "table.cost": "Coste",
        "table.recurrence": "Recurrencia",
        "table.date": "Fecha",
        "stats.initial_savings": "Ahorros iniciales",
        "stats.avg_cost_month": "Coste medio por mes",
        "stats.cost_year": "Coste por año",
        "stats.total_cost_til_eoy": "Coste total hasta final de año",
        "stats.total_income_til_eoy": "Ingresos totales hasta final de año",
        "stats.balance_eoy": "Balance a final de año",
        "stats.balance_eom": "Balance a final de cada mes",
        "recurrence.day": "Cada {days} días",
        "recurrence.month": "Cada {months} meses el día {day}",
        "recurrence.year": "Cada {years} años el día {day} del mes {month}",
        "kind.day": "Día",
        "kind.month": "Mes",
        "kind.year": "Año",
    },
}


def translate(key: str, lang: str = DEFAULT_LANG, **kwargs) -> str:
    """Look up ``key`` in ``lang``, falling back to English and then to the key itself."""
    text = MESSAGES.get(lang, {}).get(key) or MESSAGES[DEFAULT_LANG].get(key, key)
    return text.format(**kwargs) if kwargs else text
