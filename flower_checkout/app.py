# module flower_checkout.app
from flower_checkout.app_setup.factory import create_app

# App globale
app = create_app()
