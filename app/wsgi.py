from app.pageserver import create_app, start_pipeline

app = create_app()
start_pipeline(app)
