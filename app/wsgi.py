from app.awass import create_app

app = create_app()
