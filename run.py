from pickem import create_app, db
from pickem.services import get_services

app = create_app()


@app.shell_context_processor
def make_shell_context():
    with app.app_context():
        services = get_services()
    return {
        "db": db,
        "services": services,
        "repositories": services.repositories,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
