# backend/wsgi.py
from thumma import create_app

app = create_app()
