#!/usr/bin/env python3
"""
Script CLI de usuarios.

Comandos disponibles:
- seed: Crear los usuarios demo que falten (2 clientes + 1 abogada)
- set-password: Fijar la contraseña de un usuario existente

Ejemplos:
    python scripts/seed_users.py seed
    python scripts/seed_users.py set-password maria@cliente.com nuevaClave
"""

import sys
from pathlib import Path

# Agregar el directorio raíz al path para imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse

from dotenv import load_dotenv

load_dotenv()

from app.core.database import get_session  # noqa: E402
from app.core.exceptions import ReclamosException  # noqa: E402
from app.core.init_db import create_tables  # noqa: E402
from app.services.user_admin import DEMO_USERS, UserAdminService  # noqa: E402


def cmd_seed(args):
    """Alta idempotente de los usuarios demo (los existentes no se tocan)."""
    if args.create_tables:
        create_tables()

    with get_session() as session:
        created = UserAdminService(session).seed_demo_users()

    print(f"✅ Usuarios demo listos ({created} nuevos, {len(DEMO_USERS) - created} ya existentes)")
    for user in DEMO_USERS:
        print(f"   - {user.email} ({user.role.value})")


def cmd_set_password(args):
    """Resetea la contraseña de un usuario."""
    with get_session() as session:
        UserAdminService(session).set_password(args.email, args.password)
    print(f"✅ Password actualizado para {args.email}")


def main():
    parser = argparse.ArgumentParser(description="Gestión de usuarios de la API de reclamos")
    subparsers = parser.add_subparsers(dest="command", help="Comando a ejecutar")

    # Comando: seed
    parser_seed = subparsers.add_parser("seed", help="Crear usuarios demo que falten")
    parser_seed.add_argument(
        "--create-tables", action="store_true", help="Crear tablas antes (desarrollo)"
    )

    # Comando: set-password
    parser_pwd = subparsers.add_parser("set-password", help="Fijar contraseña de un usuario")
    parser_pwd.add_argument("email", help="Email del usuario")
    parser_pwd.add_argument("password", help="Nueva contraseña")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    commands = {
        "seed": cmd_seed,
        "set-password": cmd_set_password,
    }

    try:
        commands[args.command](args)
    except ReclamosException as e:
        print(f"❌ {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
