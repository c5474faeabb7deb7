"""
Vocabulary module.

- Flashcards grouped by CEFR level (A1..C2), english on the front, czech on the back
- Per-user "viewed" markers persisted server side (CardView)
- Admin CRUD for cards behind the cards.* permissions
"""
