"""
Behaviour every DbClient implementation must share.

Mixed into backend-specific ``unittest.TestCase`` classes which provide an
empty ``self.db`` in ``setUp``.
"""

from __future__ import annotations

from datetime import datetime, timezone

from escool.errors import ValidationFailure
from escool.models import (
    Application,
    Attachment,
    Course,
    Instructor,
    Lesson,
    Module,
    Project,
    ProjectFilter,
    Role,
    School,
    SchoolFilter,
    SocialLinks,
    TeamMember,
    User,
)


def make_user(username: str = "u1") -> User:
    return User(username=username, password="secret", email=f"{username}@example.com")


def make_project(created_by: int, **overrides) -> Project:
    fields = {
        "name": "Study Buddy",
        "description": "Peer matching for study groups",
        "category": "EdTech",
        "stage": "Idea Stage",
        "team_size": 1,
        "max_team_size": 4,
        "created_by": created_by,
    }
    fields.update(overrides)
    return Project(**fields)


def make_course(school_id: int, **overrides) -> Course:
    fields = {
        "title": "Intro to Python",
        "description": "Basics",
        "school_id": school_id,
        "instructor_id": 1,
        "level": "beginner",
        "category": "Programming",
    }
    fields.update(overrides)
    return Course(**fields)


class StorageContractCases:
    db = None

    def test_create_assigns_unique_increasing_ids(self):
        first = self.db.create_user(make_user("a"))
        second = self.db.create_user(make_user("b"))
        third = self.db.create_user(make_user("c"))
        self.assertEqual(len({first.id, second.id, third.id}), 3)
        self.assertLess(first.id, second.id)
        self.assertLess(second.id, third.id)

    def test_create_fills_defaults(self):
        user = self.db.create_user(make_user())
        project = self.db.create_project(make_project(user.id))
        member = self.db.create_team_member(
            TeamMember(project_id=project.id, user_id=user.id)
        )
        application = self.db.create_application(
            Application(project_id=project.id, user_id=user.id, message="hello there")
        )
        role = self.db.create_role(Role(project_id=project.id, title="Dev"))
        course = self.db.create_course(make_course(school_id=1))

        self.assertIsNone(user.avatar)
        self.assertFalse(project.featured)
        self.assertFalse(member.is_founder)
        self.assertIsNone(member.role_id)
        self.assertEqual(application.status, "pending")
        self.assertTrue(role.is_open)
        self.assertEqual(course.language, "English")
        self.assertEqual(course.lessons_count, 0)
        self.assertEqual(course.enrolled_count, 0)
        self.assertFalse(course.featured)
        self.assertEqual(course.tags, [])

        stored = self.db.get_team_member(member.id)
        self.assertEqual(stored, member)

    def test_create_stamps_utc_timestamps(self):
        before = datetime.now(timezone.utc)
        user = self.db.create_user(make_user())
        course = self.db.create_course(make_course(school_id=1))

        stored = self.db.get_user(user.id)
        self.assertIsInstance(stored.created_at, datetime)
        self.assertEqual(stored.created_at.utcoffset().total_seconds(), 0)
        self.assertGreaterEqual(stored.created_at, before)
        self.assertEqual(stored.created_at, user.created_at)
        self.assertEqual(course.created_at, course.updated_at)

    def test_get_missing_returns_none(self):
        self.assertIsNone(self.db.get_project(999))
        self.assertIsNone(self.db.get_user_by_username("nobody"))

    def test_list_filters_by_field_equality(self):
        user = self.db.create_user(make_user())
        edtech = self.db.create_project(make_project(user.id, name="A"))
        self.db.create_project(make_project(user.id, name="B", category="VR/AR"))
        featured = self.db.create_project(
            make_project(user.id, name="C", featured=True)
        )

        self.assertEqual(len(self.db.list_projects()), 3)
        self.assertEqual(len(self.db.list_projects({})), 3)
        self.assertEqual(
            [p.id for p in self.db.list_projects(ProjectFilter(category="EdTech"))],
            [edtech.id, featured.id],
        )
        self.assertEqual(
            [
                p.id
                for p in self.db.list_projects(
                    {"category": "EdTech", "featured": True}
                )
            ],
            [featured.id],
        )
        self.assertEqual(self.db.list_projects({"category": "Fintech"}), [])

    def test_unknown_filter_field_is_rejected(self):
        with self.assertRaises(ValidationFailure):
            self.db.list_projects({"colour": "blue"})
        with self.assertRaises(ValidationFailure):
            self.db.list_projects(SchoolFilter(name="x"))

    def test_featured_projects_follow_updates(self):
        user = self.db.create_user(make_user())
        project = self.db.create_project(make_project(user.id))
        self.assertNotIn(project.id, [p.id for p in self.db.list_featured_projects()])

        updated = self.db.update_project(project.id, {"featured": True})
        self.assertTrue(updated.featured)
        self.assertEqual(
            [p.id for p in self.db.list_featured_projects()], [project.id]
        )

        self.db.update_project(project.id, {"featured": False})
        self.assertEqual(self.db.list_featured_projects(), [])

    def test_update_merges_and_never_changes_id(self):
        user = self.db.create_user(make_user())
        project = self.db.create_project(make_project(user.id))

        updated = self.db.update_project(
            project.id, {"id": 12345, "team_size": 2, "website": "https://x.io"}
        )
        self.assertEqual(updated.id, project.id)
        self.assertEqual(updated.team_size, 2)
        self.assertEqual(updated.website, "https://x.io")
        self.assertEqual(updated.name, project.name)
        self.assertIsNone(self.db.get_project(12345))
        self.assertEqual(self.db.get_project(project.id), updated)

    def test_empty_update_is_noop(self):
        user = self.db.create_user(make_user())
        project = self.db.create_project(make_project(user.id))
        self.assertEqual(self.db.update_project(project.id, {}), project)
        self.assertEqual(self.db.update_project(project.id, {"id": 7}), project)

    def test_update_missing_returns_none(self):
        self.assertIsNone(self.db.update_project(999, {"team_size": 3}))
        self.assertIsNone(self.db.update_application_status(999, "accepted"))

    def test_update_rejects_unknown_fields(self):
        user = self.db.create_user(make_user())
        with self.assertRaises(ValidationFailure):
            self.db.update_user(user.id, {"nickname": "x"})

    def test_update_can_clear_optional_field(self):
        user = self.db.create_user(make_user())
        project = self.db.create_project(make_project(user.id, website="https://a"))
        updated = self.db.update_project(project.id, {"website": None})
        self.assertIsNone(updated.website)
        self.assertIsNone(self.db.get_project(project.id).website)

    def test_update_rejects_null_for_non_nullable_fields(self):
        user = self.db.create_user(make_user())
        project = self.db.create_project(make_project(user.id))
        role = self.db.create_role(Role(project_id=project.id, title="Dev"))
        course = self.db.create_course(make_course(1))

        with self.assertRaises(ValidationFailure):
            self.db.update_project(project.id, {"name": None})
        with self.assertRaises(ValidationFailure):
            self.db.update_project(project.id, {"featured": None, "website": "x"})
        with self.assertRaises(ValidationFailure):
            self.db.update_role(role.id, {"is_open": None})
        with self.assertRaises(ValidationFailure):
            self.db.update_course(course.id, {"language": None})
        with self.assertRaises(ValidationFailure):
            self.db.update_course(course.id, {"tags": None})

        self.assertEqual(self.db.get_project(project.id), project)
        self.assertEqual(self.db.list_projects(), [project])
        self.assertTrue(self.db.get_role(role.id).is_open)
        self.assertEqual(self.db.get_course(course.id).language, "English")

    def test_update_accepts_null_for_nullable_fields(self):
        school = self.db.create_school(
            School(
                name="S",
                description="d",
                category="x",
                social_links=SocialLinks(twitter="@s"),
            )
        )
        course = self.db.create_course(make_course(school.id, price=40))

        self.assertIsNone(
            self.db.update_school(school.id, {"social_links": None}).social_links
        )
        self.assertIsNone(self.db.get_school(school.id).social_links)
        self.assertIsNone(self.db.update_course(course.id, {"price": None}).price)
        self.assertIsNone(self.db.get_course(course.id).price)

    def test_delete(self):
        user = self.db.create_user(make_user())
        project = self.db.create_project(make_project(user.id))
        self.assertTrue(self.db.delete_project(project.id))
        self.assertIsNone(self.db.get_project(project.id))
        self.assertFalse(self.db.delete_project(project.id))

    def test_founder_scenario(self):
        u1 = self.db.create_user(make_user("u1"))
        p1 = self.db.create_project(
            make_project(u1.id, team_size=1, max_team_size=4)
        )
        r1 = self.db.create_role(Role(project_id=p1.id, title="Designer"))
        self.db.create_team_member(
            TeamMember(project_id=p1.id, user_id=u1.id, is_founder=True)
        )

        self.assertEqual(self.db.get_roles(p1.id), [r1])
        members = self.db.get_team_members(p1.id)
        self.assertEqual(len(members), 1)
        self.assertTrue(members[0].is_founder)
        self.assertEqual(members[0].user_id, u1.id)
        self.assertEqual(self.db.get_user_team_memberships(u1.id), members)
        self.assertEqual([p.id for p in self.db.get_user_projects(u1.id)], [p1.id])

    def test_school_courses_scenario(self):
        s1 = self.db.create_school(
            School(name="S1", description="d", category="Tech")
        )
        c1 = self.db.create_course(make_course(s1.id, featured=True))
        self.assertIn(c1.id, [c.id for c in self.db.list_featured_courses()])
        self.assertIn(c1.id, [c.id for c in self.db.get_school_courses(s1.id)])

        c2 = self.db.create_course(make_course(s1.id, title="Advanced"))
        self.assertNotIn(c2.id, [c.id for c in self.db.list_featured_courses()])
        self.assertEqual(
            [c.id for c in self.db.get_school_courses(s1.id)], [c1.id, c2.id]
        )

    def test_featured_schools(self):
        self.db.create_school(School(name="A", description="d", category="x"))
        featured = self.db.create_school(
            School(name="B", description="d", category="x", featured=True)
        )
        self.assertEqual(
            [s.id for s in self.db.list_featured_schools()], [featured.id]
        )

    def test_popular_and_new_courses(self):
        low = self.db.create_course(make_course(1, title="low", enrolled_count=5))
        high = self.db.create_course(make_course(1, title="high", enrolled_count=50))
        mid = self.db.create_course(make_course(1, title="mid", enrolled_count=20))

        self.assertEqual(
            [c.id for c in self.db.list_popular_courses()], [high.id, mid.id, low.id]
        )
        self.assertEqual(
            [c.id for c in self.db.list_popular_courses(limit=2)], [high.id, mid.id]
        )
        self.assertEqual(
            [c.id for c in self.db.list_new_courses(limit=2)], [mid.id, high.id]
        )

    def test_popular_courses_keep_creation_order_on_ties(self):
        first = self.db.create_course(make_course(1, title="a", enrolled_count=10))
        top = self.db.create_course(make_course(1, title="b", enrolled_count=99))
        second = self.db.create_course(make_course(1, title="c", enrolled_count=10))
        third = self.db.create_course(make_course(1, title="d", enrolled_count=10))

        self.assertEqual(
            [c.id for c in self.db.list_popular_courses()],
            [top.id, first.id, second.id, third.id],
        )

    def test_featured_courses_limit(self):
        for index in range(3):
            self.db.create_course(make_course(1, title=f"c{index}", featured=True))
        self.assertEqual(len(self.db.list_featured_courses(limit=2)), 2)

    def test_modules_and_lessons_are_ordered(self):
        course = self.db.create_course(make_course(1))
        second = self.db.create_module(
            Module(course_id=course.id, title="Second", order=2)
        )
        first = self.db.create_module(
            Module(course_id=course.id, title="First", order=1)
        )
        self.assertEqual(
            [m.id for m in self.db.get_modules(course.id)], [first.id, second.id]
        )

        quiz = self.db.create_lesson(
            Lesson(module_id=first.id, title="Quiz", order=2, duration=5, type="quiz")
        )
        intro = self.db.create_lesson(
            Lesson(
                module_id=first.id,
                title="Intro",
                order=1,
                duration=10,
                type="video",
                attachments=[Attachment(name="notes", url="https://n", type="pdf")],
            )
        )
        lessons = self.db.get_lessons(first.id)
        self.assertEqual([lesson.id for lesson in lessons], [intro.id, quiz.id])
        self.assertEqual(lessons[0].attachments[0].name, "notes")
        self.assertFalse(lessons[1].preview)

    def test_user_by_username(self):
        self.db.create_user(make_user("alice"))
        bob = self.db.create_user(make_user("bob"))
        self.assertEqual(self.db.get_user_by_username("bob"), bob)

    def test_applications(self):
        user = self.db.create_user(make_user())
        project = self.db.create_project(make_project(user.id))
        application = self.db.create_application(
            Application(project_id=project.id, user_id=user.id, message="let me in")
        )
        updated = self.db.update_application_status(application.id, "accepted")
        self.assertEqual(updated.status, "accepted")
        self.assertEqual(updated.message, "let me in")
        self.assertEqual(self.db.get_applications(project.id), [updated])
        self.assertEqual(self.db.get_user_applications(user.id), [updated])
        self.assertEqual(self.db.get_user_applications(user.id + 100), [])

    def test_instructors(self):
        school = self.db.create_school(School(name="S", description="d", category="x"))
        staff = self.db.create_instructor(
            Instructor(
                name="Ada",
                title="Lead",
                school_id=school.id,
                social_links=SocialLinks(twitter="@ada"),
            )
        )
        freelancer = self.db.create_instructor(Instructor(name="Bo", title="Guest"))

        self.assertEqual(self.db.get_school_instructors(school.id), [staff])
        self.assertEqual(self.db.get_instructor(staff.id).social_links.twitter, "@ada")
        self.assertIsNone(self.db.get_instructor(freelancer.id).school_id)
        self.assertEqual(len(self.db.list_instructors()), 2)

    def test_course_update_bumps_updated_at(self):
        course = self.db.create_course(make_course(1))
        updated = self.db.update_course(course.id, {"popular": True})
        self.assertTrue(updated.popular)
        self.assertEqual(updated.created_at, course.created_at)
        self.assertGreaterEqual(updated.updated_at, course.updated_at)
