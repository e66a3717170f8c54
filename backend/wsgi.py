from almacen import create_app

app = create_app()
