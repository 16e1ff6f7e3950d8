from regadmin.db.session import SessionLocal
from regadmin.jobs.spheres import SPHERE_NAMES, seed_spheres

def main():
    db = SessionLocal()
    try:
        stats = seed_spheres(db)
        print("Spheres seeded:", SPHERE_NAMES)
        print(f"  created={stats['created']} updated={stats['updated']} unchanged={stats['unchanged']}")
    finally:
        db.close()

if __name__ == "__main__":
    main()
