"""
Quick script to create the first Super Admin
"""
import asyncio
from sqlalchemy import select

from maintbot.database.core import AsyncSessionLocal
from maintbot.database.models import User, UserRole


async def check_and_add_superadmin():
    print("Enter your Telegram ID:")
    tg_id = int(input().strip())

    async with AsyncSessionLocal() as session:
        stmt = select(User).where(User.tg_id == tg_id)
        result = await session.execute(stmt)
        user = result.scalar_one_or_none()

        if user:
            print(f"✅ User found: {user.username} ({user.role})")
        else:
            print("❌ User not found. Creating Super Admin...")

            print("Enter your email:")
            email = input().strip().lower()
            print("Enter your display name:")
            username = input().strip()

            session.add(User(
                email=email,
                username=username,
                role=UserRole.super_admin.value,
                tg_id=tg_id,
                is_active=True
            ))
            await session.commit()
            print(f"✅ Super Admin created: {username} <{email}>")

        stmt = select(User).order_by(User.role, User.username)
        result = await session.execute(stmt)
        users = result.scalars().all()

        print("\n📋 All users in database:")
        for u in users:
            print(f"  - {u.username} <{u.email}> (TG: {u.tg_id}, Role: {u.role})")


if __name__ == "__main__":
    asyncio.run(check_and_add_superadmin())
