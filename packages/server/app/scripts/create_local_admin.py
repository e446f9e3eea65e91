"""
Script to bootstrap a local tenant: a user, an organization they own and a
first project. Prints the project's key pair, which is not shown again.
"""

import argparse
import asyncio

from app.core.config import get_settings
from app.core.database import Database
from app.core.errors import ConflictError
from app.services.organizations import OrganizationService
from app.services.projects import ProjectService
from app.services.users import UserService
from app.models.user import User
from sqlmodel import select


async def bootstrap(email: str, password: str, org_name: str, project_name: str, create_tables: bool):
    settings = get_settings()
    db = Database.from_settings(settings)
    try:
        if create_tables:
            await db.create_all()

        users = UserService(db)
        try:
            user = await users.create_user(email.split("@")[0], email, password)
            print(f"Created user: {email}")
        except ConflictError:
            user = await db.scalar(select(User).where(User.email == email))
            print(f"User {email} already exists.")

        org = await OrganizationService(db).create(org_name, user.id)
        print(f"Created organization '{org.name}' ({org.id}) owned by {email}.")

        project = await ProjectService(db, salt=settings.secret_key_salt).create_project(
            project_name, org.id
        )
        print(f"Created project '{project.name}' ({project.id}).")
        print(f"  public key: {project.api_keys.public_key}")
        print(f"  secret key: {project.api_keys.secret_key}")
        print("Store the secret key now; it cannot be retrieved later.")
    finally:
        await db.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a local admin user, org and project.")
    parser.add_argument("--email", required=True, help="Email address for the user")
    parser.add_argument("--password", required=True, help="Password for the user")
    parser.add_argument("--org", default="Default Organization", help="Organization name")
    parser.add_argument("--project", default="Default Project", help="Project name")
    parser.add_argument("--create-tables", action="store_true", help="Create tables before seeding")

    args = parser.parse_args()

    asyncio.run(bootstrap(args.email, args.password, args.org, args.project, args.create_tables))
