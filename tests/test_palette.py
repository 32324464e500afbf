from lineagechart.view.palette import PublisherPalette


def test_most_prolific_publisher_first(llm_forest):
    palette = PublisherPalette(llm_forest)
    assert [e.publisher for e in palette.entries] == ["Google", "OpenAI", "BigScience", "Meta"]
    assert palette.entries[0].label == "Google (5)"
    assert palette.entries[-1].label == "Meta"
    assert palette.color("Google") == "#1f77b4"
    assert palette.color("Nobody") == "#999999"
    assert len({e.color for e in palette.entries}) == len(palette)
