import logging
from tempfile import NamedTemporaryFile

from django.conf import settings
from langchain_openai import ChatOpenAI
from langchain_community.document_loaders import Docx2txtLoader, PyPDFLoader, TextLoader
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import PromptTemplate

from materials.models import Material, Summary
from study_aid.exceptions import ExtractionFailure, GenerationFailure, NotFound

logger = logging.getLogger("study_aid")


summary_prompt = """
    You are an expert educational summarizer. Create a comprehensive summary of the provided study material,
    organized by topic and subtopic. Include key concepts, definitions, and important points.

    Generate a detailed summary for study material titled: "{title}". Here's the content to summarize:

    {text}
"""


def get_document_loader(file_path: str, file_type: str):
    file_type = file_type.lower().lstrip(".")

    if file_type == "pdf":
        return PyPDFLoader(file_path)
    if file_type == "docx":
        return Docx2txtLoader(file_path)
    if file_type == "txt":
        return TextLoader(file_path, encoding="utf-8", autodetect_encoding=True)

    raise ExtractionFailure(f"Unsupported file format: .{file_type}")


def extract_text_from_file(file_path: str, file_type: str) -> str:
    loader = get_document_loader(file_path, file_type)

    try:
        documents = loader.load()
    except Exception as e:
        logger.error(e)
        raise ExtractionFailure(f"Failed to extract text from {file_type.upper()} file")

    return "\n".join(doc.page_content for doc in documents if doc.page_content).strip()


def extract_text_from_upload(upload, file_type: str) -> str:
    """
    Loaders need a path on disk, so the upload is spooled to a temporary file
    carrying the right extension before being read.
    """
    with NamedTemporaryFile(suffix=f".{file_type}") as tempfile:
        for chunk in upload.chunks():
            tempfile.write(chunk)
        tempfile.flush()

        content = extract_text_from_file(tempfile.name, file_type)

    upload.seek(0)
    return content


def create_material_from_upload(user, upload, title="", description="", subject="") -> Material:
    file_type = upload.name.rsplit(".", 1)[-1].lower()

    content = extract_text_from_upload(upload, file_type)

    if not content:
        logger.warning(f"No text extracted from {upload.name}")

    material = Material.objects.create(
        user=user,
        title=title or upload.name,
        description=description or "",
        subject=subject or "",
        file_type=file_type,
        upload_file=upload,
        content=content,
    )

    logger.info(f"Material {material.pk} created for user {user.pk} ({len(content)} characters)")
    return material


def generate_summary(text: str, title: str) -> str:
    prompt = PromptTemplate(
        template=summary_prompt,
        input_variables=["title", "text"],
    )

    try:
        model = ChatOpenAI(model=settings.OPENAI_MODEL, api_key=settings.OPENAI_API_KEY, temperature=0.7)
        chain = prompt | model | StrOutputParser()
        output = chain.invoke({"title": title, "text": text})
    except Exception as e:
        logger.error(e)
        raise GenerationFailure("Failed to generate summary")

    if not output or not output.strip():
        raise GenerationFailure("Failed to generate summary")

    return output.strip()


def create_summary_for_material(material: Material) -> Summary:
    if not material.has_content:
        raise NotFound("Material has no extracted content")

    summary_content = generate_summary(text=material.content, title=material.title)

    summary = Summary.objects.create(
        user=material.user,
        material=material,
        title=f"Summary: {material.title}",
        content=summary_content,
    )

    logger.info(f"Summary {summary.pk} created for material {material.pk}")
    return summary
