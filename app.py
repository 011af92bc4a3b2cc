"""WSGI entry point: ``flask --app app run`` or ``gunicorn app:app``.

The scheduled sweeps run through the same app: ``flask --app app reconcile-absences``.
"""

from classroom_checkin.main import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=app.config["DEBUG"])
