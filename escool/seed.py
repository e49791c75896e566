"""
Demonstration dataset loaded into the in-memory backend at construction.
"""

from __future__ import annotations

import logging

from escool.db import BaseDbClient
from escool.models import (
    Attachment,
    Course,
    Instructor,
    Lesson,
    Module,
    Project,
    Role,
    School,
    SocialLinks,
    TeamMember,
    User,
)

logger = logging.getLogger(__name__)

SCHOOLS = [
    {
        "name": "Tech School",
        "description": "Learn cutting-edge technologies and development practices",
        "image": "https://images.unsplash.com/photo-1581092918056-0c4c3acd3789",
        "category": "Software Engineering",
        "categories": ["Web Development", "Cloud", "DevOps"],
        "featured": True,
        "location": "San Francisco, CA",
        "established": "2019",
    },
    {
        "name": "Business School",
        "description": "Master business fundamentals and startup strategies",
        "image": "https://images.unsplash.com/photo-1434030216411-0b793f4b4173",
        "category": "Entrepreneurship",
        "categories": ["Startups", "Marketing", "Finance"],
        "featured": True,
        "location": "New York, NY",
        "established": "2018",
    },
    {
        "name": "Data Science School",
        "description": "Learn to build intelligent systems and analyze data",
        "image": "https://images.unsplash.com/photo-1581094794329-c8112c4133a5",
        "category": "AI & Machine Learning",
        "categories": ["Machine Learning", "Statistics"],
        "location": "Boston, MA",
        "established": "2020",
    },
    {
        "name": "Design School",
        "description": "Master the principles of user-centered design",
        "image": "https://images.unsplash.com/photo-1581287053822-fd7bf4f4bfec",
        "category": "UX/UI & Product Design",
        "categories": ["UX Research", "Visual Design"],
        "location": "Austin, TX",
        "established": "2021",
    },
]

PROJECTS = [
    {
        "name": "AI Education Assistant",
        "description": "An AI-powered platform that helps students master complex subjects through personalized learning paths and interactive content.",
        "banner": "https://images.unsplash.com/photo-1556155092-490a1ba16284",
        "category": "EdTech",
        "stage": "Building MVP",
        "team_size": 2,
        "max_team_size": 4,
        "website": "https://aieduassistant.com",
        "problem": "Students struggle with traditional one-size-fits-all learning approaches.",
        "market": "The global e-learning market was valued at $250 billion in 2020 and is expected to reach $1 trillion by 2027.",
        "competition": "Khan Academy, Coursera, Duolingo",
        "featured": True,
        "roles": [
            ("Frontend Developer", "Develop and maintain the user interface using React"),
            ("UX Designer", "Design user interfaces and user experiences"),
        ],
    },
    {
        "name": "EdTech Analytics Platform",
        "description": "A comprehensive analytics tool for educational institutions to track student performance and improve teaching methods.",
        "banner": "https://images.unsplash.com/photo-1551135049-8a33b5883817",
        "category": "Analytics",
        "stage": "Idea Stage",
        "team_size": 1,
        "max_team_size": 3,
        "problem": "Educational institutions lack insights into student performance and learning patterns.",
        "market": "The education analytics market is expected to grow at a CAGR of 17.4% from 2021 to 2028.",
        "competition": "Blackboard Analytics, PowerSchool",
        "featured": True,
        "founder": 1,
        "roles": [
            ("Data Scientist", "Build machine learning models for educational data"),
        ],
    },
    {
        "name": "Virtual Learning Environment",
        "description": "An immersive VR-based platform that creates interactive learning experiences for students of all ages.",
        "banner": "https://images.unsplash.com/photo-1579389083078-4e7018379f7e",
        "category": "VR/AR",
        "stage": "Idea Stage",
        "team_size": 3,
        "max_team_size": 6,
        "website": "https://vrlearn.tech",
        "problem": "Traditional learning environments lack engagement and immersion.",
        "market": "The VR in education market is projected to reach $13 billion by 2026.",
        "competition": "ClassVR, Engage VR",
        "featured": True,
        "roles": [
            ("Unity Developer", "Develop VR environments using Unity"),
            ("3D Artist", "Create 3D models and environments"),
            ("Game Designer", "Design interactive learning games"),
            ("Education Specialist", "Provide expertise on educational content"),
        ],
    },
    {
        "name": "Course Management System",
        "description": "A comprehensive platform for educational institutions to manage courses, students, and resources.",
        "banner": "https://images.unsplash.com/photo-1522202176988-66273c2fd55f",
        "category": "Tech",
        "stage": "Active Project",
        "team_size": 4,
        "max_team_size": 6,
        "website": "https://coursemgr.io",
        "problem": "Educational institutions struggle with outdated administrative systems.",
        "market": "The education management software market is expected to grow to $22.18 billion by 2026.",
        "competition": "Canvas, Moodle, Blackboard",
        "roles": [
            ("Frontend Developer", "Develop and maintain the user interface"),
            ("UX Designer", "Design user interfaces and user experiences"),
        ],
    },
    {
        "name": "AI Tutoring Platform",
        "description": "Personalized AI tutoring service that adapts to each student's learning style and pace.",
        "banner": "https://images.unsplash.com/photo-1497493292307-31c376b6e479",
        "category": "EdTech",
        "stage": "Looking for Co-founder",
        "team_size": 1,
        "max_team_size": 4,
        "website": "https://ai-tutor.edu",
        "problem": "Traditional tutoring is expensive and not accessible to all students.",
        "market": "The global private tutoring market is projected to reach $279 billion by 2026.",
        "competition": "Knewton, Carnegie Learning",
        "founder": 1,
        "roles": [
            ("Co-founder (Technical)", "Technical co-founder with ML/AI experience"),
            ("ML Engineer", "Build and train machine learning models"),
            ("Education Expert", "Provide expertise on educational content and strategies"),
        ],
    },
    {
        "name": "Educational Metaverse",
        "description": "An immersive virtual reality platform for collaborative learning and educational experiences.",
        "banner": "https://images.unsplash.com/photo-1470770841072-f978cf4d019e",
        "category": "VR/AR",
        "stage": "New Project",
        "team_size": 2,
        "max_team_size": 8,
        "website": "https://eduverse.world",
        "problem": "Distance learning lacks the social and immersive aspects of in-person education.",
        "market": "The metaverse in education market is expected to grow at a CAGR of 39.8% from 2022 to 2030.",
        "competition": "Roblox Education, Meta Horizon Worlds",
        "roles": [
            ("Unity Developer", "Develop VR environments using Unity"),
            ("3D Artist", "Create 3D models and environments"),
            ("Game Designer", "Design interactive learning games"),
            ("Education Specialist", "Provide expertise on educational content"),
        ],
    },
]

# (title, level, category, featured, popular, enrolled_count, price)
COURSES = {
    "Tech School": [
        ("Modern Web Development", "beginner", "Web Development", True, True, 1250, 4900),
        ("Cloud Infrastructure Fundamentals", "intermediate", "Cloud", False, True, 840, 5900),
    ],
    "Business School": [
        ("Startup Fundamentals", "beginner", "Startups", True, False, 620, 2900),
    ],
    "Data Science School": [
        ("Machine Learning in Practice", "advanced", "Machine Learning", True, True, 980, 7900),
    ],
    "Design School": [
        ("User Research Essentials", "beginner", "UX Research", False, False, 310, None),
    ],
}

MODULE_OUTLINE = [
    ("Getting Started", [("Welcome", "video", 5, True), ("Course Setup", "article", 10, False)]),
    ("Core Concepts", [("Key Ideas", "video", 20, False), ("Check Your Understanding", "quiz", 10, False)]),
]


def seed_demo_data(db: BaseDbClient) -> None:
    """Populate ``db`` with a fixed demonstration dataset."""
    john = db.create_user(
        User(
            username="johndoe",
            password="password123",
            email="john@example.com",
            avatar="https://randomuser.me/api/portraits/men/1.jpg",
            bio="Full-stack developer interested in EdTech",
        )
    )
    jane = db.create_user(
        User(
            username="janedoe",
            password="password123",
            email="jane@example.com",
            avatar="https://randomuser.me/api/portraits/women/2.jpg",
            bio="UX Designer with passion for educational products",
        )
    )
    users = [john, jane]

    for fields in SCHOOLS:
        school = db.create_school(School(**fields))
        instructor = db.create_instructor(
            Instructor(
                name=f"{school.name} Faculty Lead",
                title="Lead Instructor",
                bio=f"Heads the {school.category} curriculum.",
                school_id=school.id,
                social_links=SocialLinks(website=school.image),
            )
        )
        courses = COURSES.get(school.name, [])
        for title, level, category, featured, popular, enrolled, price in courses:
            course = db.create_course(
                Course(
                    title=title,
                    description=f"{title} from the {school.name}.",
                    school_id=school.id,
                    instructor_id=instructor.id,
                    level=level,
                    category=category,
                    duration=120,
                    tags=[category],
                    price=price,
                    featured=featured,
                    popular=popular,
                    is_new=not popular,
                    certificate=True,
                    enrolled_count=enrolled,
                )
            )
            _seed_course_content(db, course)
        db.update_school(
            school.id,
            {"course_count": len(courses), "instructors_count": 1},
        )
        db.update_instructor(instructor.id, {"courses_count": len(courses)})

    for index, fields in enumerate(PROJECTS):
        fields = dict(fields)
        roles = fields.pop("roles")
        founder = users[fields.pop("founder", 0)]
        project = db.create_project(Project(created_by=founder.id, **fields))
        for title, description in roles:
            db.create_role(
                Role(project_id=project.id, title=title, description=description)
            )
        db.create_team_member(
            TeamMember(project_id=project.id, user_id=founder.id, is_founder=True)
        )
        if index == 0:
            db.create_team_member(TeamMember(project_id=project.id, user_id=jane.id))

    logger.debug("Seeded demonstration data into %s", type(db).__name__)


def _seed_course_content(db: BaseDbClient, course: Course) -> None:
    for module_order, (module_title, lessons) in enumerate(MODULE_OUTLINE, start=1):
        module = db.create_module(
            Module(course_id=course.id, title=module_title, order=module_order)
        )
        for lesson_order, (title, kind, duration, preview) in enumerate(
            lessons, start=1
        ):
            db.create_lesson(
                Lesson(
                    module_id=module.id,
                    title=title,
                    order=lesson_order,
                    duration=duration,
                    type=kind,
                    attachments=(
                        [Attachment(name="Slides", url="https://example.com/slides.pdf", type="pdf")]
                        if kind == "article"
                        else []
                    ),
                    preview=preview,
                )
            )
