import json
import random

from partnermatch.config import Settings
from partnermatch.models import CourseEnrollment, Topic, UserProfile, now_iso
from partnermatch.normalizer import parse_preferences
from partnermatch.profile_repo import ProfileRepo

# === CONFIG ===
SETTINGS = Settings.from_env()
N_SYNTHETIC = 30

COURSES = [
    ("CS101", "Introduction to Programming", ["variables", "loops", "functions"]),
    ("CS201", "Data Structures", ["linked lists", "trees", "hash tables"]),
    ("CS301", "Algorithms", ["sorting", "graphs", "dynamic programming"]),
    ("MAT101", "Calculus I", ["limits", "derivatives", "integrals"]),
    ("MAT210", "Linear Algebra", ["matrices", "eigenvalues", "vector spaces"]),
    ("STA110", "Statistics for Data Science", ["probability", "regression", "hypothesis testing"]),
    ("SWE300", "Software Engineering", ["testing", "design patterns", "version control"]),
    ("DBS200", "Database Systems", ["sql", "normalization", "transactions"]),
]
PROGRAMS = ["Computer Science", "Data Science", "Software Engineering", "Applied Mathematics"]
INSTITUTIONS = ["MIT", "Stanford University"]
STYLES = ["visual", "collaborative", "mixed", "auditory", "kinesthetic"]
GROUP_SIZES = ["small", "medium", "large"]
SLOTS = ["morning", "afternoon", "evening"]

TEST_USERS = [
    ("test_user_1", "Alice", "Smith", "MIT", "Computer Science", 3,
     '{"studyStyle": "visual", "groupSize": "small", "environment": "quiet", "availability": ["morning", "afternoon"]}'),
    ("test_user_2", "Bob", "Johnson", "MIT", "Data Science", 2,
     '{"studyStyle": "collaborative", "groupSize": "medium", "environment": "collaborative", "availability": ["afternoon", "evening"]}'),
    ("test_user_3", "Carol", "Wilson", "Stanford University", "Software Engineering", 4,
     '{"studyStyle": "mixed", "groupSize": "large", "environment": "flexible", "availability": ["evening"]}'),
    ("test_user_4", "David", "Brown", "MIT", "Applied Mathematics", 1,
     '{"studyStyle": "auditory", "groupSize": "small", "environment": "quiet", "availability": ["morning"]}'),
    ("test_user_5", "Emma", "Davis", "MIT", "Computer Science", 2,
     '{"studyStyle": "kinesthetic", "groupSize": "medium", "environment": "collaborative", "availability": ["afternoon", "evening"]}'),
]


def make_courses(k: int):
    picked = random.sample(COURSES, k=k)
    return [
        CourseEnrollment(
            course_id=code,
            code=code,
            name=name,
            description=f"{name}: core module covering {', '.join(topics)}.",
            topics=[Topic(name=t, course_id=code) for t in topics],
        )
        for code, name, topics in picked
    ]


def make_test_users():
    users = []
    for uid, first, last, institution, program, year, prefs in TEST_USERS:
        users.append(UserProfile(
            id=uid,
            institution=institution,
            program_name=program,
            year_of_study=year,
            preferences=parse_preferences(prefs),
            enrolled_courses=make_courses(random.choice([2, 3, 4])),
            first_name=first,
            last_name=last,
            email=f"{first}.{last}@example.edu".lower(),
            created_at=now_iso(),
        ))
    return users


def make_synthetic_user(i: int) -> UserProfile:
    prefs = {
        "studyStyle": random.choice(STYLES),
        "groupSize": random.choice(GROUP_SIZES),
        "availability": random.sample(SLOTS, k=random.choice([1, 2])),
    }
    return UserProfile(
        id=f"synthetic_{i}",
        institution=random.choice(INSTITUTIONS),
        program_name=random.choice(PROGRAMS),
        year_of_study=random.randint(1, 4),
        preferences=parse_preferences(json.dumps(prefs)),
        enrolled_courses=make_courses(random.randint(1, 5)),
        total_study_hours=float(random.randint(0, 40)),
        first_name=f"Synthetic{i}",
        email=f"synthetic+{i}@example.edu",
        created_at=now_iso(),
    )


if __name__ == "__main__":  # pragma: no cover
    repo = ProfileRepo(SETTINGS.profiles_table, capabilities=SETTINGS.capabilities, region=SETTINGS.region)
    users = make_test_users() + [make_synthetic_user(i) for i in range(N_SYNTHETIC)]
    for u in users:
        repo.put_profile(u)
    print(f"Seeded {len(users)} profiles into {SETTINGS.profiles_table}.")
