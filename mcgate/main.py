"""Entrypoint: build the gateway app and serve it."""
from mcgate.application_factory import create_app
from mcgate.services.bootstrap import run_server, seed_admin_user


def main():
    app = create_app()
    runtime = app.extensions["mcgate"]
    state = runtime["state"]
    cfg = runtime["config"]

    boot_steps = [
        ("seed_admin_user", lambda: seed_admin_user(state["store"], cfg.get_str, state["log_mcgate_log"])),
    ]
    try:
        run_server(
            app,
            cfg.get_str,
            cfg.get_int,
            state["log_mcgate_log"],
            state["log_mcgate_exception"],
            boot_steps,
        )
    finally:
        state["rcon_executor"].shutdown(wait=False)


if __name__ == "__main__":
    main()
