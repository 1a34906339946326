from eno import create_app

app = create_app()
