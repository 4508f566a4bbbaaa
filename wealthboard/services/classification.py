from wealthboard.domain.enums import IncomeClass

# Порядок важен: источник попадает в первую совпавшую группу.
INCOME_RULES: tuple[tuple[IncomeClass, tuple[str, ...]], ...] = (
    (
        IncomeClass.PASSIVE,
        (
            "dividend",
            "interest",
            "rental",
            "investment",
            "capital gains",
            "business profit",
            "real estate",
        ),
    ),
    (
        IncomeClass.ACTIVE,
        (
            "salary",
            "wage",
            "job",
            "employment",
            "freelance",
            "consulting",
            "contract",
        ),
    ),
)

def classify_income(source: str) -> IncomeClass:
    """
    Классифицирует источник дохода по подстроке без учета регистра.
    Совпадение с несколькими группами разрешается в пользу passive.
    """
    text = (source or "").lower()

    for income_class, keywords in INCOME_RULES:
        for keyword in keywords:
            if keyword in text:
                return income_class

    return IncomeClass.NEITHER
