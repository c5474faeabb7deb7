"""
Learning features: vocabulary cards, progress, stories, games and word lists.

Each feature keeps its models, services and blueprints together and uses the
shared pieces (db session, auth/RBAC, audit, storage) from app.smartvocab.
"""
