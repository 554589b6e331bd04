from __future__ import annotations

from tagweave.config import CodegenConfig
from tagweave.extractor import extract_regions
from tagweave.preprocessor import preprocess, transform_markup


def test_transform_markup_single_region() -> None:
    assert (
        transform_markup("<Loading />", CodegenConfig())
        == "Document.CreateElement(Loading, new LoadingProps { })"
    )


def test_preprocess_rewrites_region_in_place() -> None:
    result = preprocess("var v = (<Loading />);")

    assert result.transformed_code == "var v = Document.CreateElement(Loading, new LoadingProps { });"
    assert result.original_code == "var v = (<Loading />);"
    assert result.passes == 1
    assert [t.success for t in result.transformations] == [True]
    assert result.transformations[0].original == "(<Loading />)"


def test_independent_regions_take_one_pass() -> None:
    src = "a = (<a/>);\nb = (<Big/>);\nc = (<c/>);"
    result = preprocess(src)

    assert result.passes == 1
    assert len(result.succeeded) == 3
    assert extract_regions(result.transformed_code) == []
    assert result.transformed_code == (
        'a = Document.CreateElement("a", new HtmlAProps { });\n'
        "b = Document.CreateElement(Big, new BigProps { });\n"
        'c = Document.CreateElement("c", new HtmlCProps { });'
    )


def test_offsets_are_corrected_for_earlier_splices() -> None:
    src = "x(<br/>) + y(<Loading/>) + z"
    result = preprocess(src)

    assert result.transformed_code == (
        'xDocument.CreateElement("br", new HtmlBrProps { }) + '
        "yDocument.CreateElement(Loading, new LoadingProps { }) + z"
    )


def test_failed_region_is_kept_and_siblings_still_transform() -> None:
    src = "a = (<div>); b = (<b/>);"
    result = preprocess(src)

    assert result.transformed_code == 'a = (<div>); b = Document.CreateElement("b", new HtmlBProps { });'
    first = result.transformations[0]
    assert first.success is False
    assert first.original == "(<div>)"
    assert "unclosed element <div>" in (first.error or "")
    assert result.transformations[1].success is True
    # The second pass fails on the same region again; it is reported once.
    assert len(result.transformations) == 2
    assert result.passes == 2


def test_pass_without_progress_stops() -> None:
    src = "x = (<div><span></div>);"
    result = preprocess(src)

    assert result.transformed_code == src
    assert result.passes == 1
    assert len(result.failed) == 1
    assert "mismatched closing tag" in (result.failed[0].error or "")


def test_lex_error_is_reported_per_region() -> None:
    result = preprocess("v = (<p>{x</p>);")

    assert result.transformed_code == "v = (<p>{x</p>);"
    assert "unterminated code block" in (result.failed[0].error or "")


def test_region_inside_code_prop_is_reached_on_next_pass() -> None:
    src = "(<Outer render={() => (<Inner />)} />)"
    result = preprocess(src)

    assert result.passes == 2
    assert result.transformed_code == (
        "Document.CreateElement(Outer, new OuterProps { Render = () => "
        "Document.CreateElement(Inner, new InnerProps { }) })"
    )


def test_region_inside_code_child_is_reached_on_next_pass() -> None:
    src = "var list = (<ul>{items.Select(i => (<li>{i}</li>))}</ul>);"
    result = preprocess(src)

    out = result.transformed_code
    assert "(<" not in out
    assert 'Document.CreateElement("ul", new HtmlUlProps { },' in out
    assert 'items.Select(i => Document.CreateElement("li", new HtmlLiProps { },' in out
    assert result.passes == 2


def test_caller_supplied_matches_replace_first_extraction() -> None:
    src = "a = (<a/>); b = (<b/>);"
    first_only = extract_regions(src)[:1]

    result = preprocess(src, CodegenConfig(), matches=first_only)

    assert result.passes == 2
    assert result.transformed_code == preprocess(src).transformed_code


def test_no_regions_returns_source_unchanged() -> None:
    src = "if (a < b) { return; }"
    result = preprocess(src)

    assert result.transformed_code == src
    assert result.passes == 0
    assert result.transformations == []


def test_config_is_threaded_to_renderer() -> None:
    result = preprocess("(<br/>)", CodegenConfig(factory_name="Ui", create_element_name="H"))
    assert result.transformed_code == 'Ui.H("br", new HtmlBrProps { })'


def test_identical_failure_exposed_on_later_pass_is_recorded() -> None:
    src = "a = (<div>); b = (<Outer render={() => (<div>)} />);"
    result = preprocess(src)

    assert result.passes == 2
    assert result.transformed_code == (
        "a = (<div>); b = Document.CreateElement(Outer, new OuterProps "
        "{ Render = () => (<div>) });"
    )
    assert [t.original for t in result.failed] == ["(<div>)", "(<div>)"]
    assert len(result.succeeded) == 1
