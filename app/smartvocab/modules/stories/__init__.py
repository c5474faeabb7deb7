"""
Audio stories module.

Stories are short graded texts with an optional audio recording kept in storage
(local filesystem or S3) under stories/<id>/<filename>.
"""
