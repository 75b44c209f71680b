# functions/routes/__init__.py
