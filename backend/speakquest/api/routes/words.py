"""Practice word list endpoints."""

from fastapi import APIRouter, HTTPException

from speakquest.api.dependencies import WordList
from speakquest.core.words import get_next_word, get_random_word, get_word_by_index
from speakquest.models.envelope import success_response

router = APIRouter()


@router.get("")
async def list_words(words: WordList) -> dict:
    return success_response({"words": words, "count": len(words)})


@router.get("/next")
async def next_word(words: WordList, index: int = -1) -> dict:
    """The word after ``index``, wrapping to the start of the list."""
    if not words:
        raise HTTPException(status_code=404, detail="No practice words configured")
    word, next_index = get_next_word(words, index)
    return success_response({"word": word, "index": next_index})


@router.get("/random")
async def random_word(words: WordList) -> dict:
    if not words:
        raise HTTPException(status_code=404, detail="No practice words configured")
    return success_response({"word": get_random_word(words)})


@router.get("/{index}")
async def word_at(index: int, words: WordList) -> dict:
    word = get_word_by_index(words, index)
    if word is None:
        raise HTTPException(status_code=404, detail=f"No word at index {index}")
    return success_response({"word": word, "index": index})
