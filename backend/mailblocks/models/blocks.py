"""
Pydantic models for block-based email/poster editing
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Literal, get_args


BlockType = Literal["header", "hero", "content", "cta", "features", "testimonial", "footer", "custom"]

KNOWN_BLOCK_TYPES = get_args(BlockType)


# Editable elements extracted from a block
class EditableImage(BaseModel):
    src: str
    alt: str = ""
    width: Optional[int] = None
    height: Optional[int] = None
    index: int  # Position among the images of the block


class EditableText(BaseModel):
    content: str
    tag: str  # h1, h2, p, span, td, etc.
    index: int


class EditableLink(BaseModel):
    href: str
    text: str = ""
    index: int


class EditableColor(BaseModel):
    property: str  # background-color, color, border-color
    value: str
    selector: str  # Property name, no DOM is built


class EditableElements(BaseModel):
    images: List[EditableImage] = []
    text: List[EditableText] = []
    links: List[EditableLink] = []
    colors: List[EditableColor] = []


class EmailBlock(BaseModel):
    id: str
    type: str  # Usually a BlockType, unknown names are kept verbatim
    label: str
    html: str
    startIndex: int = 0
    endIndex: int = 0
    attributes: Optional[str] = None  # Trailing text of the opening marker
    editable: EditableElements = Field(default_factory=EditableElements)

    @property
    def is_known_type(self) -> bool:
        return self.type in KNOWN_BLOCK_TYPES


class ParsedEmail(BaseModel):
    blocks: List[EmailBlock] = []
    rawHtml: str
    preBlockHtml: str = ""  # HTML before first block (doctype, head, etc.)
    postBlockHtml: str = ""  # HTML after last block (closing tags)

    @property
    def has_blocks(self) -> bool:
        return len(self.blocks) > 0

    @property
    def block_ids(self) -> List[str]:
        return [block.id for block in self.blocks]


# Mutation requests
class ImageUpdate(BaseModel):
    index: int
    src: str
    alt: Optional[str] = None


class TextUpdate(BaseModel):
    index: int
    content: str


class LinkUpdate(BaseModel):
    index: int
    href: Optional[str] = None
    text: Optional[str] = None


class ColorUpdate(BaseModel):
    property: str
    value: str
    selector: Optional[str] = None


class BlockUpdate(BaseModel):
    """
    Sparse mutation request for one block.

    Indices always refer to the extraction snapshot of the block the update
    is applied to, never to positions after earlier edits.
    """
    images: List[ImageUpdate] = []
    text: List[TextUpdate] = []
    links: List[LinkUpdate] = []
    colors: List[ColorUpdate] = []
    # Deletions - indices of elements to remove from the block HTML
    deleteImages: List[int] = []
    deleteText: List[int] = []
    deleteLinks: List[int] = []

    @property
    def is_empty(self) -> bool:
        return not any([
            self.images,
            self.text,
            self.links,
            self.colors,
            self.deleteImages,
            self.deleteText,
            self.deleteLinks,
        ])


class ChatContext(BaseModel):
    brandName: str
    emailType: str
    tone: str
    primaryColor: str
    secondaryColor: str
    accentColor: Optional[str] = None
    industry: Optional[str] = None


# Validation report for a finished document
class EmailValidation(BaseModel):
    isValid: bool
    warnings: List[str] = []
    errors: List[str] = []
    sizeBytes: int = 0
