"""
Personal word lists.

Users build their own lists (word, translation, optional image) and practice them
card by card; every answer is stored so list progress and mastery rate can be derived.
"""
