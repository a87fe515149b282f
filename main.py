from disconsulate.sidecar import create_app

app = create_app()
