import pytest

from gallery_pipeline.catalog import load_workshop, pick_hero_image, scan_workshops, title_from_dirname
from gallery_pipeline.processing import ImageProcessor
from gallery_pipeline.schemas import WorkshopImage
from conftest import write_image


@pytest.fixture
def processor(workshops, small_config):
    return ImageProcessor(workshops, small_config)


def make_workshop(root, name, sidecar, images=("a.jpg",)):
    project = root / name
    project.mkdir()
    (project / "project.yaml").write_text(sidecar, encoding="utf-8")
    for image in images:
        write_image(project / image, (200, 100))
    return project


def test_title_from_dirname():
    assert title_from_dirname("cedar-bird_house") == "Cedar Bird House"
    assert title_from_dirname("DIY-lamp") == "DIY Lamp"


def test_pick_hero_image():
    images = [
        WorkshopImage(filename=name, path=f"/w/p/{name}", name=name.split(".")[0])
        for name in ("a.jpg", "Finished.JPG", "step.jpg")
    ]
    assert pick_hero_image(images, {"hero_image": "step.jpg"}) == "/w/p/step.jpg"
    assert pick_hero_image(images, {"hero_image": "missing.jpg"}) == "/w/p/Finished.JPG"
    assert pick_hero_image(images[:1], {}) == "/w/p/a.jpg"
    assert pick_hero_image([], {}) is None


def test_load_workshop_processes_unprocessed_project(workshops, processor):
    project = make_workshop(
        workshops,
        "bird-house",
        "category: woodworking\ndifficulty: easy\nnsfw: 'no'\nsteps:\n  - cut\n  - glue\n",
        images=("a.jpg", "hero.jpg"),
    )

    workshop = load_workshop(processor, "bird-house")

    assert (project / "sizes" / "thumb" / "a.jpg").is_file()
    assert (project / "originals" / "a.jpg").is_file()
    assert workshop.title == "Bird House"
    assert workshop.category == "woodworking"
    assert workshop.difficulty == "easy"
    assert workshop.nsfw is False
    assert workshop.has_steps is True
    assert workshop.steps == ["cut", "glue"]
    assert [i.filename for i in workshop.images] == ["a.jpg", "hero.jpg"]
    assert workshop.images[0].path == "/workshops/bird-house/sizes/medium/a.jpg"
    assert workshop.hero_image == "/workshops/bird-house/sizes/medium/hero.jpg"


def test_existing_sizes_dir_is_not_reprocessed(workshops, processor):
    project = make_workshop(workshops, "lamp", "category: lighting\n")
    (project / "sizes").mkdir()

    workshop = load_workshop(processor, "lamp")

    assert (project / "a.jpg").is_file()
    assert not (project / "originals").exists()
    assert workshop.images[0].path == "/workshops/lamp/a.jpg"


def test_projects_without_category_are_skipped(workshops, processor):
    make_workshop(workshops, "draft", "title: Draft\n")
    make_workshop(workshops, "broken", "- not a mapping\n")
    (workshops / "bare").mkdir()

    assert load_workshop(processor, "draft") is None
    assert load_workshop(processor, "broken") is None
    assert load_workshop(processor, "bare") is None
    assert not (workshops / "draft" / "sizes").exists()


def test_scan_workshops_sorts_and_groups(workshops, processor):
    make_workshop(workshops, "zebra", "title: Zebra Stool\ncategory: woodworking\n")
    make_workshop(workshops, "apple", "title: Apple Crate\ncategory: woodworking\n")
    make_workshop(workshops, "lamp", "category: lighting\n")
    make_workshop(workshops, "draft", "title: Draft\n")

    listing = scan_workshops(processor)

    assert [w.id for w in listing.workshops] == ["lamp", "apple", "zebra"]
    assert listing.total_count == 3
    assert [(c.name, c.count, c.workshops) for c in listing.categories] == [
        ("lighting", 1, ["lamp"]),
        ("woodworking", 2, ["apple", "zebra"]),
    ]
