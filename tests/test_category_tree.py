import pytest

import category_tree
from category_tree import CategoryCycleError
from errors import AppError
from models import CategoryModel
from schemas import CategoryCreate, CategoryUpdate
from tests.conftest import JPEG_DATA_URL, PNG_DATA_URL, make_category


def names(nodes):
    return [(n.name, names(n.children)) for n in nodes]


def test_root_set_expands_to_nested_tree(db):
    electronics = make_category(db, "Electronics")
    make_category(db, "Phones", parent=electronics)

    tree = category_tree.list_tree(db)

    assert names(tree) == [("Electronics", [("Phones", [])])]
    assert tree[0].children[0].parent_id == electronics.id


def test_every_descendant_appears_once_at_its_depth(db):
    root = make_category(db, "Root")
    a = make_category(db, "A", parent=root)
    b = make_category(db, "B", parent=root)
    a1 = make_category(db, "A1", parent=a)
    make_category(db, "A1x", parent=a1)
    make_category(db, "B1", parent=b)
    make_category(db, "Other")

    tree = category_tree.list_tree(db)

    assert names(tree) == [
        ("Root", [("A", [("A1", [("A1x", [])])]), ("B", [("B1", [])])]),
        ("Other", []),
    ]


def test_subtree_of_single_category(db):
    root = make_category(db, "Root")
    child = make_category(db, "Child", parent=root)
    make_category(db, "Grandchild", parent=child)

    node = category_tree.get_subtree(db, child.id)

    assert node.name == "Child"
    assert names(node.children) == [("Grandchild", [])]


def test_subtree_of_missing_category_is_404(db):
    with pytest.raises(AppError) as exc:
        category_tree.get_subtree(db, 999)
    assert exc.value.status_code == 404


def test_cycle_in_parent_chain_is_reported(db):
    a = make_category(db, "A")
    b = make_category(db, "B", parent=a)
    a.parent_id = b.id
    db.commit()

    with pytest.raises(CategoryCycleError):
        category_tree.expand_categories(db, [a])


def test_descendant_ids_include_root_and_skip_inactive(db):
    root = make_category(db, "Root")
    child = make_category(db, "Child", parent=root)
    grandchild = make_category(db, "Grandchild", parent=child)
    hidden = make_category(db, "Hidden", parent=root, is_active=False)
    make_category(db, "Unrelated")

    ids = category_tree.get_all_descendant_ids(db, root.id)

    assert ids[0] == root.id
    assert set(ids) == {root.id, child.id, grandchild.id}
    assert hidden.id not in ids


def test_delete_with_children_is_conflict(db, storage):
    parent = make_category(db, "Parent")
    make_category(db, "Child", parent=parent)

    with pytest.raises(AppError) as exc:
        category_tree.delete_category(db, storage, parent.id)

    assert exc.value.status_code == 409
    assert db.query(CategoryModel).count() == 2


def test_delete_leaf_removes_image(db, storage):
    uploaded = storage.upload_files("categories", "Leaf", [PNG_DATA_URL])
    leaf = make_category(db, "Leaf", image=uploaded.paths[0])
    image_file = storage.resolve(leaf.image)
    assert image_file.exists()

    category_tree.delete_category(db, storage, leaf.id)

    assert not image_file.exists()
    assert db.query(CategoryModel).count() == 0


def test_delete_leaf_with_missing_image_still_succeeds(db, storage):
    leaf = make_category(db, "Leaf", image="categories/gone.png")

    category_tree.delete_category(db, storage, leaf.id)

    assert db.query(CategoryModel).count() == 0


def test_create_uploads_image_and_checks_parent(db, storage):
    category = category_tree.create_category(db, storage, CategoryCreate(name="Books", image=PNG_DATA_URL))

    assert category.image.startswith("categories/Books_")
    assert storage.resolve(category.image).is_file()

    with pytest.raises(AppError) as exc:
        category_tree.create_category(
            db, storage, CategoryCreate(name="Novels", image=PNG_DATA_URL, parent_id=12345)
        )
    assert exc.value.status_code == 400


def test_duplicate_name_is_rejected_by_unique_index(db, storage):
    category_tree.create_category(db, storage, CategoryCreate(name="Books", image=PNG_DATA_URL))

    with pytest.raises(AppError) as exc:
        category_tree.create_category(db, storage, CategoryCreate(name="Books", image=PNG_DATA_URL))

    assert exc.value.status_code == 400
    assert db.query(CategoryModel).count() == 1


def test_update_replaces_image_after_commit(db, storage):
    category = category_tree.create_category(db, storage, CategoryCreate(name="Music", image=PNG_DATA_URL))
    old_image = category.image

    updated = category_tree.update_category(db, storage, CategoryUpdate(id=category.id, image=JPEG_DATA_URL))

    assert updated.image != old_image
    assert storage.resolve(updated.image).is_file()
    assert not storage.resolve(old_image).exists()


def test_update_name_conflict_keeps_old_image(db, storage):
    category_tree.create_category(db, storage, CategoryCreate(name="Books", image=PNG_DATA_URL))
    music = category_tree.create_category(db, storage, CategoryCreate(name="Music", image=PNG_DATA_URL))
    old_image = music.image

    with pytest.raises(AppError) as exc:
        category_tree.update_category(
            db, storage, CategoryUpdate(id=music.id, name="Books", image=JPEG_DATA_URL)
        )

    assert exc.value.status_code == 400
    db.refresh(music)
    assert music.image == old_image
    assert storage.resolve(old_image).is_file()
    # yeni yüklenen resim geride kalmaz
    assert [p.name for p in storage.resolve("categories").iterdir() if p.suffix == ".jpg"] == []


def test_update_cannot_move_category_under_its_descendant(db, storage):
    root = make_category(db, "Root")
    child = make_category(db, "Child", parent=root)

    with pytest.raises(AppError) as exc:
        category_tree.update_category(db, storage, CategoryUpdate(id=root.id, parent_id=child.id))

    assert exc.value.status_code == 400
    db.refresh(root)
    assert root.parent_id is None


def test_update_can_detach_to_root(db, storage):
    root = make_category(db, "Root")
    child = make_category(db, "Child", parent=root)

    updated = category_tree.update_category(db, storage, CategoryUpdate(id=child.id, parent_id=None))

    assert updated.parent_id is None
    assert sorted(n.name for n in category_tree.list_tree(db)) == ["Child", "Root"]


def test_delete_with_products_is_conflict(db, storage, product):
    with pytest.raises(AppError) as exc:
        category_tree.delete_category(db, storage, product.category_id)

    assert exc.value.status_code == 409
    assert db.query(CategoryModel).count() == 1
