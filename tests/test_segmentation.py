from truthcheck.services.common.segmentation import segment


def test_abbreviation_does_not_end_sentence():
    text = "Dr. Smith said the vaccine works. It was tested in 2020."
    assert segment(text) == ["Dr. Smith said the vaccine works.", "It was tested in 2020."]


def test_decimal_number_is_not_a_boundary():
    text = "The Earth is 4.5 billion years old. Water boils at 100 degrees."
    sentences = segment(text)

    assert len(sentences) == 2
    assert sentences[0] == "The Earth is 4.5 billion years old."


def test_dotted_acronym_is_not_a_boundary():
    text = "The U.S. economy grew by 3 percent last year. Prices rose sharply in June."
    assert segment(text) == [
        "The U.S. economy grew by 3 percent last year.",
        "Prices rose sharply in June.",
    ]


def test_single_initial_is_not_a_boundary():
    text = "John F. Kennedy was elected president in 1960. He served until 1963."
    sentences = segment(text)

    assert sentences[0] == "John F. Kennedy was elected president in 1960."
    assert len(sentences) == 2


def test_question_and_exclamation_marks_split():
    text = "Do vaccines cause autism? No study has ever shown that! The data is clear on this."
    assert segment(text) == [
        "Do vaccines cause autism?",
        "No study has ever shown that!",
        "The data is clear on this.",
    ]


def test_closing_quote_stays_with_its_sentence():
    text = 'He said "the trial worked." Then he left the room quietly.'
    assert segment(text) == ['He said "the trial worked."', "Then he left the room quietly."]


def test_short_fragments_are_dropped():
    text = "Yes. Okay. The vaccine trial enrolled 30,000 people."
    assert segment(text) == ["The vaccine trial enrolled 30,000 people."]


def test_paragraphs_split_even_without_punctuation():
    text = "First paragraph without a period\n\nSecond paragraph here too"
    assert segment(text) == ["First paragraph without a period", "Second paragraph here too"]


def test_whitespace_is_collapsed():
    text = "The   vaccine\nreduced   hospital stays.   Officials   confirmed it."
    assert segment(text) == ["The vaccine reduced hospital stays.", "Officials confirmed it."]


def test_segmentation_is_idempotent_over_rejoined_output():
    text = "Dr. Smith said the vaccine works. It was tested in 2020. The U.S. approved it in May."
    first = segment(text)
    assert segment(" ".join(first)) == first


def test_empty_and_non_string_input():
    assert segment("") == []
    assert segment("   ") == []
    assert segment(None) == []  # type: ignore[arg-type]


def test_custom_min_length():
    text = "Short one. This sentence is clearly longer than the other."
    assert segment(text, min_length=5) == ["Short one.", "This sentence is clearly longer than the other."]
