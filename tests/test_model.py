"""
Tests model instances against a recording transaction.
"""
import pytest

from asyncentity import context
from asyncentity.exc import MultipleRecordsFoundError, RecordNotFoundError
from asyncentity.orm.schema.association import ManyToOne
from asyncentity.orm.schema.column import Column
from asyncentity.orm.schema.model import model_base
from asyncentity.orm.schema.types import String

Model = model_base()


class School(Model):
    name = Column(String(64))


class Student(Model):
    name = Column(String(64))
    nick = Column(String(32), name="nickname")
    school = ManyToOne("School")


class Course(Model):
    title = Column(String(64))

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    async def before_save(self):
        self.calls.append("before_save")

    async def after_save(self):
        self.calls.append("after_save")

    async def before_create(self):
        self.calls.append("before_create")

    async def after_create(self):
        self.calls.append("after_create")

    async def before_update(self):
        self.calls.append("before_update")

    async def after_update(self):
        self.calls.append("after_update")


Model.metadata.build()


def test_constructor_maps_properties_and_column_names():
    assert Student(nick="gin").nick == "gin"
    assert Student({"nickname": "gin"}).nick == "gin"
    assert Student({"name": "ginger"}, name="bellette").name == "bellette"


def test_constructor_ignores_unknown_keys():
    student = Student(name="ginger", age=12)
    assert student.to_json() == {"name": "ginger"}
    assert not hasattr(student, "age")


def test_dirty_data_is_keyed_by_column_name():
    student = Student(name="ginger", nick="gin")
    assert student.is_dirty()
    assert student.get_dirty_data() == {"name": "ginger", "nickname": "gin"}

    student.clean()
    assert not student.is_dirty()
    assert student.get_dirty_data() == {}

    student.nick = "g"
    assert student.get_dirty_data() == {"nickname": "g"}


def test_unset_columns_read_as_none():
    student = Student()
    assert student.id is None
    assert student.name is None
    assert not student.is_dirty()


def test_clean_instance():
    student = Student.build_clean_instance({"id": 1, "name": "ginger",
                                            "school": [{"id": 2, "name": "north"}]})
    assert student.id == 1
    assert student.school.name == "north"
    assert not student.is_dirty()
    assert not student.school.is_dirty()


def test_to_json_and_str():
    student = Student(name="ginger", school={"name": "north"})
    assert student.to_json() == {"name": "ginger", "school": {"name": "north"}}
    assert str(Student(name="ginger")) == 'Student - {"name": "ginger"}'
    assert repr(Student(id=3)) == "<Student id=3>"


def test_overwrite():
    student = Student.build_clean_instance({"id": 1, "name": "ginger"})
    other = Student(name="bellette")
    student.overwrite(other)
    assert student.name == "bellette"
    assert student.id == 1
    assert student.get_dirty_data() == {"name": "bellette"}


async def test_save_inserts(recorder):
    recorder.results.append([{"id": 5}])
    course = Course(title="algebra")
    with context.scope(transaction=recorder):
        await course.save()

    assert course.id == 5
    assert not course.is_dirty()
    assert course.calls == ["before_save", "before_create", "after_create", "after_save"]
    assert recorder.statements == [(
        'INSERT INTO "public"."course" ("title") VALUES (:param_0) RETURNING "id";',
        {"param_0": "algebra"}
    )]


async def test_save_updates(recorder):
    course = Course.build_clean_instance({"id": 5, "title": "algebra"})
    course.title = "geometry"
    with context.scope(transaction=recorder):
        await course.save()

    assert not course.is_dirty()
    assert course.calls == ["before_save", "before_update", "after_update", "after_save"]
    assert recorder.statements == [(
        'UPDATE "public"."course" SET "title" = :param_0 WHERE "course"."id" = :param_1;',
        {"param_0": "geometry", "param_1": 5}
    )]


async def test_save_clean_model_does_nothing(recorder):
    course = Course.build_clean_instance({"id": 5, "title": "algebra"})
    with context.scope(transaction=recorder):
        await course.save()

    assert course.calls == ["before_save"]
    assert recorder.statements == []


async def test_save_many_to_one_saves_target_first(recorder):
    recorder.results.extend([[{"id": 2}], [{"id": 1}]])
    student = Student(name="ginger", school=School(name="north"))
    with context.scope(transaction=recorder):
        await student.save()

    assert student.school.id == 2
    assert student.school_id == 2
    assert student.id == 1
    assert recorder.statements == [
        ('INSERT INTO "public"."school" ("name") VALUES (:param_0) RETURNING "id";',
         {"param_0": "north"}),
        ('INSERT INTO "public"."student" ("name", "school_id") '
         'VALUES (:param_0, :param_1) RETURNING "id";',
         {"param_0": "ginger", "param_1": 2}),
    ]


async def test_instance_delete(recorder):
    with context.scope(transaction=recorder):
        await Course(title="algebra").delete()
        await Course.build_clean_instance({"id": 5, "title": "algebra"}).delete()

    assert recorder.statements == [
        ('DELETE FROM "public"."course" WHERE "course"."id" = :param_0;', {"param_0": 5}),
    ]


async def test_class_delete(recorder):
    with context.scope(transaction=recorder):
        await Course.delete({"title": "algebra"})

    assert recorder.statements == [
        ('DELETE FROM "public"."course" WHERE "course"."title" = :param_0;',
         {"param_0": "algebra"}),
    ]


async def test_get(recorder):
    recorder.results.append([{"id": 1, "title": "algebra"}])
    with context.scope(transaction=recorder):
        course = await Course.get(1)

    assert course.id == 1
    assert course.title == "algebra"
    assert not course.is_dirty()


async def test_find_one_not_found(recorder):
    with context.scope(transaction=recorder):
        with pytest.raises(RecordNotFoundError) as e:
            await Course.find_one({"id": 1})

    assert e.value.status == 404
    assert str(e.value) == 'Record Not Found on Course with Key {"id": 1}'


async def test_find_one_multiple(recorder):
    recorder.results.append([{"id": 1, "title": "algebra"}, {"id": 2, "title": "algebra"}])
    with context.scope(transaction=recorder):
        with pytest.raises(MultipleRecordsFoundError) as e:
            await Course.find_one({"title": "algebra"})

    assert e.value.status == 500


async def test_find_at_most_one(recorder):
    with context.scope(transaction=recorder):
        assert await Course.find_at_most_one({"id": 1}) is None


async def test_find_all_with_include(recorder):
    recorder.results.append([
        {"id": 1, "name": "ginger", "nickname": None, "school_id": 2,
         "school.id": 2, "school.name": "north"},
        {"id": 3, "name": "bellette", "nickname": None, "school_id": 2,
         "school.id": 2, "school.name": "north"},
    ])
    with context.scope(transaction=recorder):
        students = await Student.find_all({"school_id": 2}, includes=["school"])

    assert [s.name for s in students] == ["ginger", "bellette"]
    assert students[0].school.name == "north"
    assert not students[0].school.is_dirty()
    assert "LEFT JOIN" in recorder.sql[0]


async def test_insert_all(recorder):
    recorder.results.append([{"id": 1}, {"id": 2}])
    courses = [Course(title="algebra"), Course(title="geometry")]
    with context.scope(transaction=recorder):
        ids = await Course.insert_all(courses)

    assert ids == [1, 2]
    assert [c.id for c in courses] == [1, 2]
    assert not any(c.is_dirty() for c in courses)
    assert len(recorder.statements) == 1


async def test_count(recorder):
    recorder.results.append([{"count": 2}])
    with context.scope(transaction=recorder):
        assert await Course.count() == 2
