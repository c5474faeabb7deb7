"""Starter deck: nine english/czech cards per level."""
from __future__ import annotations

SEED_CARDS: dict[str, list[tuple[str, str]]] = {
    "A1": [
        ("Hello", "Ahoj"),
        ("Goodbye", "Sbohem"),
        ("Please", "Prosím"),
        ("Thank you", "Děkuji"),
        ("Yes", "Ano"),
        ("No", "Ne"),
        ("Name", "Jméno"),
        ("Family", "Rodina"),
        ("Friend", "Přítel"),
    ],
    "A2": [
        ("Breakfast", "Snídaně"),
        ("Lunch", "Oběd"),
        ("Dinner", "Večeře"),
        ("Market", "Trh"),
        ("Shop", "Obchod"),
        ("Money", "Peníze"),
        ("Ticket", "Lístek"),
        ("Bus", "Autobus"),
        ("Train", "Vlak"),
    ],
    "B1": [
        ("Journey", "Cesta"),
        ("Experience", "Zkušenost"),
        ("Advice", "Rada"),
        ("Opinion", "Názor"),
        ("Choice", "Volba"),
        ("Chance", "Šance"),
        ("Success", "Úspěch"),
        ("Failure", "Neúspěch"),
        ("Goal", "Cíl"),
    ],
    "B2": [
        ("Environment", "Prostředí"),
        ("Development", "Rozvoj"),
        ("Research", "Výzkum"),
        ("Solution", "Řešení"),
        ("Resource", "Zdroj"),
        ("Network", "Síť"),
        ("Industry", "Průmysl"),
        ("Economy", "Ekonomika"),
        ("Policy", "Politika"),
    ],
    "C1": [
        ("Comprehensive", "Komplexní"),
        ("Substantial", "Podstatný"),
        ("Ambiguous", "Nejednoznačný"),
        ("Notion", "Pojem"),
        ("Perception", "Vnímání"),
        ("Phenomenon", "Jev"),
        ("Framework", "Rámec"),
        ("Paradigm", "Paradigma"),
        ("Discrepancy", "Nesoulad"),
    ],
    "C2": [
        ("Ephemeral", "Pomíjivý"),
        ("Quintessential", "Typický"),
        ("Obfuscate", "Zatemnit"),
        ("Serendipity", "Šťastná náhoda"),
        ("Ubiquitous", "Všudypřítomný"),
        ("Juxtaposition", "Srovnání"),
        ("Vicissitude", "Zvrat"),
        ("Ineffable", "Nevyjádřitelný"),
        ("Ebullient", "Nadšený"),
    ],
}
