from core.environment import get_eur_to_syp_rate


def eur_to_syp(amount_eur: float) -> float:
    return round((amount_eur or 0) * get_eur_to_syp_rate(), 2)


def syp_to_eur(amount_syp: float) -> float:
    return round((amount_syp or 0) / get_eur_to_syp_rate(), 2)


def money(amount: float) -> float:
    return round(amount or 0, 2)
