# module labstore.app
from labstore.app_setup.factory import create_app

app = create_app()
