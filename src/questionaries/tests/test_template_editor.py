"""test_template_editor.py: Unit tests for structural template edits."""

import random
from uuid import uuid4

import pytest

from questionaries.enums import DataType, Operator
from questionaries.exceptions import (
    CyclicDependencyError,
    DependencyTargetInUseError,
    DependencyTargetNotFoundError,
    InvalidDependencyError,
    InvalidOrderError,
    TemplateIntegrityError,
    TopicNotEmptyError,
)
from questionaries.field_config import SelectionConfig, TextConfig
from questionaries.schema import TemplateSchema
from questionaries.template_editor import TemplateEditor

from .conftest import TemplateBuilder, depends_on, make_question


def _assert_dense(template: TemplateSchema) -> None:
    assert sorted(tp.sort_order for tp in template.topics) == list(range(len(template.topics)))
    for topic in template.topics:
        assert sorted(f.sort_order for f in topic.fields) == list(range(len(topic.fields)))
        assert all(f.topic_id == topic.id for f in topic.fields)


def _titles(template: TemplateSchema) -> list[str]:
    return [tp.title for tp in sorted(template.topics, key=lambda tp: tp.sort_order)]


def _field_ids(template: TemplateSchema, topic_index: int) -> list[str]:
    topic = sorted(template.topics, key=lambda tp: tp.sort_order)[topic_index]
    return [f.question_id for f in sorted(topic.fields, key=lambda f: f.sort_order)]


# ---- Topics ----


def test_create_topic_inserts_and_shifts_later_topics() -> None:
    editor = TemplateEditor(TemplateSchema(name="T"))
    editor.create_topic(0, title="first")
    editor.create_topic(1, title="third")
    editor.create_topic(1, title="second")

    assert _titles(editor.template) == ["first", "second", "third"]
    _assert_dense(editor.template)


def test_create_topic_past_the_end_appends() -> None:
    editor = TemplateEditor(TemplateSchema(name="T"))
    editor.create_topic(0, title="first")
    topic = editor.create_topic(42, title="last")

    assert topic.sort_order == 1
    assert _titles(editor.template) == ["first", "last"]


def test_create_topic_rejects_negative_order() -> None:
    editor = TemplateEditor(TemplateSchema(name="T"))

    with pytest.raises(InvalidOrderError):
        editor.create_topic(-1)
    assert editor.template.topics == []


def test_editor_does_not_touch_the_original_snapshot(chain_template: TemplateSchema) -> None:
    original = chain_template.model_copy(deep=True)
    editor = TemplateEditor(chain_template)
    editor.create_topic(0, title="new")

    assert chain_template == original
    assert len(editor.template.topics) == 2


def test_update_topic_changes_only_given_attributes(template_builder: TemplateBuilder) -> None:
    topic_id = template_builder.topic("Original")
    editor = TemplateEditor(template_builder.build())

    topic = editor.update_topic(topic_id, is_enabled=False)

    assert topic.title == "Original"
    assert topic.is_enabled is False


def test_delete_non_empty_topic_fails_and_leaves_template_unchanged(chain_template: TemplateSchema) -> None:
    editor = TemplateEditor(chain_template)
    before = editor.template.model_copy(deep=True)

    with pytest.raises(TopicNotEmptyError):
        editor.delete_topic(chain_template.topics[0].id)
    assert editor.template == before


def test_delete_empty_topic_closes_the_gap(template_builder: TemplateBuilder) -> None:
    template_builder.topic("a")
    middle = template_builder.topic("b")
    template_builder.topic("c")
    editor = TemplateEditor(template_builder.build())

    editor.delete_topic(middle)

    assert _titles(editor.template) == ["a", "c"]
    _assert_dense(editor.template)


def test_identity_reorder_is_a_no_op(template_builder: TemplateBuilder) -> None:
    ids = [template_builder.topic(title) for title in ("a", "b", "c")]
    template = template_builder.build()
    editor = TemplateEditor(template)

    editor.reorder_topics(ids)

    assert editor.template == template


def test_reorder_topics_follows_the_given_order(template_builder: TemplateBuilder) -> None:
    a, b, c = (template_builder.topic(title) for title in ("a", "b", "c"))
    editor = TemplateEditor(template_builder.build())

    editor.reorder_topics([c, a, b])

    assert _titles(editor.template) == ["c", "a", "b"]
    _assert_dense(editor.template)


@pytest.mark.parametrize("mutation", ["missing", "duplicate", "foreign"])
def test_reorder_topics_requires_a_permutation(template_builder: TemplateBuilder, mutation: str) -> None:
    ids = [template_builder.topic(title) for title in ("a", "b")]
    editor = TemplateEditor(template_builder.build())
    ordered = {"missing": ids[:1], "duplicate": [ids[0], ids[0]], "foreign": [ids[0], uuid4()]}[mutation]

    with pytest.raises(InvalidOrderError):
        editor.reorder_topics(ordered)


# ---- Fields ----


def test_create_field_copies_the_default_config(template_builder: TemplateBuilder) -> None:
    topic_id = template_builder.topic()
    editor = TemplateEditor(template_builder.build())
    question = make_question("q", DataType.TEXT, max_length=10)

    field = editor.create_field(topic_id, question)

    assert field.config == question.default_config
    assert field.config is not question.default_config
    assert field.dependency is None


def test_create_field_rejects_a_question_placed_twice(chain_template: TemplateSchema) -> None:
    editor = TemplateEditor(chain_template)

    with pytest.raises(TemplateIntegrityError):
        editor.create_field(chain_template.topics[0].id, make_question("a"))


def test_create_field_in_unknown_topic_fails(chain_template: TemplateSchema) -> None:
    editor = TemplateEditor(chain_template)

    with pytest.raises(TemplateIntegrityError):
        editor.create_field(uuid4(), make_question("new"))


def test_delete_field_that_others_depend_on_is_blocked(chain_template: TemplateSchema) -> None:
    editor = TemplateEditor(chain_template)
    field = chain_template.find_field_by_question("a")
    assert field is not None

    with pytest.raises(DependencyTargetInUseError):
        editor.delete_field(field.id)
    assert editor.template == chain_template


def test_delete_field_densifies_its_topic(chain_template: TemplateSchema) -> None:
    editor = TemplateEditor(chain_template)
    field = chain_template.find_field_by_question("c")
    assert field is not None
    editor.delete_field(field.id)
    editor.set_dependency(editor.template.find_field_by_question("b").id, None)  # type: ignore[union-attr]
    editor.delete_field(editor.template.find_field_by_question("a").id)  # type: ignore[union-attr]

    assert _field_ids(editor.template, 0) == ["b"]
    _assert_dense(editor.template)


def test_move_question_within_its_topic(chain_template: TemplateSchema) -> None:
    editor = TemplateEditor(chain_template)
    field = chain_template.find_field_by_question("c")
    assert field is not None

    editor.move_question_to_topic(field.id, field.topic_id, 0)

    assert _field_ids(editor.template, 0) == ["c", "a", "b"]
    _assert_dense(editor.template)


def test_move_question_to_another_topic(template_builder: TemplateBuilder) -> None:
    first = template_builder.topic("first")
    second = template_builder.topic("second")
    moved = template_builder.field(first, "x")
    template_builder.field(first, "y")
    template_builder.field(second, "z")
    editor = TemplateEditor(template_builder.build())

    editor.move_question_to_topic(moved.id, second, 1)

    assert _field_ids(editor.template, 0) == ["y"]
    assert _field_ids(editor.template, 1) == ["z", "x"]
    _assert_dense(editor.template)


def test_move_question_rejects_negative_order(chain_template: TemplateSchema) -> None:
    editor = TemplateEditor(chain_template)
    field = chain_template.find_field_by_question("a")
    assert field is not None

    with pytest.raises(InvalidOrderError):
        editor.move_question_to_topic(field.id, field.topic_id, -1)


# ---- Dependencies ----


def test_cyclic_dependency_is_rejected_and_template_unchanged(chain_template: TemplateSchema) -> None:
    editor = TemplateEditor(chain_template)
    field = chain_template.find_field_by_question("a")
    assert field is not None

    with pytest.raises(CyclicDependencyError):
        editor.set_dependency(field.id, depends_on("c", "x"))
    with pytest.raises(CyclicDependencyError):
        editor.set_dependency(field.id, depends_on("a", "x"))
    assert editor.template == chain_template


def test_dependency_target_must_be_in_the_template(chain_template: TemplateSchema) -> None:
    editor = TemplateEditor(chain_template)
    field = chain_template.find_field_by_question("c")
    assert field is not None

    with pytest.raises(DependencyTargetNotFoundError):
        editor.set_dependency(field.id, depends_on("elsewhere", "x"))


def test_dependency_on_an_embellishment_is_rejected(template_builder: TemplateBuilder) -> None:
    topic_id = template_builder.topic()
    template_builder.field(topic_id, "heading", DataType.EMBELLISHMENT, html="<h2>Samples</h2>")
    field = template_builder.field(topic_id, "q")
    editor = TemplateEditor(template_builder.build())

    with pytest.raises(InvalidDependencyError):
        editor.set_dependency(field.id, depends_on("heading", "x"))


def test_dependency_params_must_fit_the_target_type(template_builder: TemplateBuilder) -> None:
    topic_id = template_builder.topic()
    template_builder.field(topic_id, "amount", DataType.NUMBER)
    field = template_builder.field(topic_id, "q")
    editor = TemplateEditor(template_builder.build())

    with pytest.raises(InvalidDependencyError):
        editor.set_dependency(field.id, depends_on("amount", "plenty"))
    editor.set_dependency(field.id, depends_on("amount", "12.5"))
    assert editor.template.find_field(field.id).dependency is not None  # type: ignore[union-attr]


def test_dependency_with_unknown_operator_is_rejected(chain_template: TemplateSchema) -> None:
    editor = TemplateEditor(chain_template)
    field = chain_template.find_field_by_question("c")
    assert field is not None

    with pytest.raises(InvalidDependencyError):
        editor.set_dependency(field.id, depends_on("a", "x", operator="contains"))


def test_clearing_a_dependency(chain_template: TemplateSchema) -> None:
    editor = TemplateEditor(chain_template)
    field = chain_template.find_field_by_question("b")
    assert field is not None

    editor.set_dependency(field.id, None)

    assert editor.template.find_field(field.id).dependency is None  # type: ignore[union-attr]
    editor.check_integrity()


def test_replacing_a_dependency_ignores_the_old_one(chain_template: TemplateSchema) -> None:
    """Re-pointing C from B to A does not count C's old edge as part of a loop."""
    editor = TemplateEditor(chain_template)
    field = chain_template.find_field_by_question("c")
    assert field is not None

    editor.set_dependency(field.id, depends_on("a", "yes", Operator.NEQ))

    assert editor.template.find_field(field.id).dependency.dependency_id == "a"  # type: ignore[union-attr]


# ---- Config and integrity ----


def test_update_field_config_must_match_the_data_type(template_builder: TemplateBuilder) -> None:
    topic_id = template_builder.topic()
    field = template_builder.field(topic_id, "q", DataType.TEXT)
    editor = TemplateEditor(template_builder.build())

    editor.update_field_config(field.id, TextConfig(required=True, max_length=5))
    with pytest.raises(TemplateIntegrityError):
        editor.update_field_config(field.id, SelectionConfig(options=["a"]))

    config = editor.template.find_field(field.id).config  # type: ignore[union-attr]
    assert isinstance(config, TextConfig)
    assert config.required is True


def test_check_integrity_detects_gaps(chain_template: TemplateSchema) -> None:
    broken = chain_template.model_copy(deep=True)
    broken.topics[0].fields[1].sort_order = 5

    with pytest.raises(TemplateIntegrityError):
        TemplateEditor(broken).check_integrity()


def test_check_integrity_detects_stored_cycles(chain_template: TemplateSchema) -> None:
    broken = chain_template.model_copy(deep=True)
    broken.topics[0].fields[0].dependency = depends_on("c", "x")

    with pytest.raises(CyclicDependencyError):
        TemplateEditor(broken).check_integrity()


def test_orders_stay_dense_across_random_edit_sequences() -> None:
    """Whatever sequence of edits is applied, every sort order sequence stays 0..n-1."""
    rng = random.Random(1234)
    editor = TemplateEditor(TemplateSchema(name="T"))
    counter = 0

    for _ in range(200):
        topics = editor.template.topics
        fields = list(editor.template.iter_fields())
        action = rng.choice(["topic", "field", "move", "delete_topic", "delete_field", "reorder"])
        try:
            if action == "topic" or not topics:
                editor.create_topic(rng.randint(0, len(topics) + 2), title=f"t{counter}")
            elif action == "field":
                editor.create_field(
                    rng.choice(topics).id, make_question(f"q{counter}"), rng.choice([None, 0, 1, 10])
                )
            elif action == "move" and fields:
                editor.move_question_to_topic(rng.choice(fields).id, rng.choice(topics).id, rng.randint(0, 5))
            elif action == "delete_topic":
                editor.delete_topic(rng.choice(topics).id)
            elif action == "delete_field" and fields:
                editor.delete_field(rng.choice(fields).id)
            elif action == "reorder":
                ids = [tp.id for tp in topics]
                rng.shuffle(ids)
                editor.reorder_topics(ids)
        except TopicNotEmptyError:
            pass
        counter += 1
        _assert_dense(editor.template)

    editor.check_integrity()
