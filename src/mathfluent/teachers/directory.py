"""Static directory of tutors available for direct messages."""

from pydantic import BaseModel, ConfigDict, Field

ALL_SUBJECTS = "All Subjects"


class Teacher(BaseModel):
    """A tutor listed in the directory."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    avatar: str
    subjects: tuple[str, ...]
    bio: str
    experience: str
    rating: float = Field(ge=0, le=5)

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match over name, bio and subjects."""
        needle = query.strip().lower()
        if not needle:
            return True
        haystack = [self.name, self.bio, *self.subjects]
        return any(needle in field.lower() for field in haystack)


TEACHERS: tuple[Teacher, ...] = (
    Teacher(
        id="teacher-1",
        name="Dr. Evelyn Reed",
        email="evelyn.reed@example.com",
        avatar="https://picsum.photos/seed/evelyn/200/200",
        subjects=("Calculus", "Linear Algebra", "Differential Equations"),
        bio="Passionate about making complex math accessible. PhD in Applied Mathematics "
            "with 10+ years of teaching experience at university level.",
        experience="10+ years",
        rating=4.9,
    ),
    Teacher(
        id="teacher-2",
        name="Mr. Samuel Green",
        email="samuel.green@example.com",
        avatar="https://picsum.photos/seed/samuel/200/200",
        subjects=("Algebra", "Geometry", "Trigonometry", "Statistics"),
        bio="Engaging high school math teacher focused on building strong foundational skills. "
            "Believes in a practical, problem-solving approach.",
        experience="8 years",
        rating=4.7,
    ),
    Teacher(
        id="teacher-3",
        name="Ms. Olivia Chen",
        email="olivia.chen@example.com",
        avatar="https://picsum.photos/seed/olivia/200/200",
        subjects=("Pre-Calculus", "Statistics", "Discrete Mathematics"),
        bio="Friendly and patient tutor specializing in helping students overcome math anxiety. "
            "MSc in Statistics.",
        experience="5 years",
        rating=4.8,
    ),
    Teacher(
        id="teacher-4",
        name="Prof. Arthur Dent",
        email="arthur.dent@example.com",
        avatar="https://picsum.photos/seed/arthur/200/200",
        subjects=("Number Theory", "Abstract Algebra", "Topology"),
        bio="Researcher and lecturer with a knack for explaining abstract concepts with clarity "
            "and enthusiasm. Enjoys tackling challenging problems.",
        experience="15 years",
        rating=4.6,
    ),
    Teacher(
        id="teacher-5",
        name="Mrs. Bella Swan",
        email="bella.swan@example.com",
        avatar="https://picsum.photos/seed/bella/200/200",
        subjects=("Basic Math", "Pre-Algebra", "Study Skills"),
        bio="Dedicated to helping younger students build confidence in math. "
            "Focuses on personalized learning and making math fun.",
        experience="6 years",
        rating=4.9,
    ),
    Teacher(
        id="teacher-6",
        name="Dr. Zaphod Beeblebrox",
        email="zaphod.beeblebrox@example.com",
        avatar="https://picsum.photos/seed/zaphod/200/200",
        subjects=("Probability Theory", "Mathematical Physics", "Chaos Theory"),
        bio="An unconventional tutor who makes even the most improbable math topics seem "
            "perfectly normal. Two heads are better than one for problem-solving!",
        experience="7 years",
        rating=4.5,
    ),
)

# Filter choices, in the order they are offered
SUBJECTS: tuple[str, ...] = (ALL_SUBJECTS, *dict.fromkeys(s for t in TEACHERS for s in t.subjects))


def get_teacher(teacher_id: str) -> Teacher | None:
    return next((t for t in TEACHERS if t.id == teacher_id), None)


def find_teachers(query: str = "", subject: str = ALL_SUBJECTS) -> list[Teacher]:
    """Teachers matching a free-text query and a subject filter.

    Args:
        query: Substring searched in name, bio and subjects (blank matches all)
        subject: One subject, or ``ALL_SUBJECTS`` for no filter

    Returns:
        Matching teachers in directory order
    """
    subject = subject or ALL_SUBJECTS
    return [
        t for t in TEACHERS
        if (subject == ALL_SUBJECTS or subject in t.subjects) and t.matches(query)
    ]
