# backend/wsgi.py
from garment_ledger import create_app

app = create_app()
