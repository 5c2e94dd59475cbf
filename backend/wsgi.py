from motocare import create_app

app = create_app()
