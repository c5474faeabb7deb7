from app.smartvocab import create_app

app = create_app()
