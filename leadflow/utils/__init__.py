"""Pure helpers for contacts, names and dates."""
