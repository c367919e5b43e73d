"""WSGI entry point.

- Gunicorn: gunicorn wsgi:application
- Development: python wsgi.py (creates and seeds a local SQLite database)
"""

from hopeconnect import create_app

application = create_app()

if __name__ == '__main__':
    from hopeconnect.cli import seed_if_empty
    from hopeconnect.database import db

    app = create_app('development')
    with app.app_context():
        db.create_all()
        if seed_if_empty():
            print('Database created and seeded with sample content')
    app.run(debug=True)
