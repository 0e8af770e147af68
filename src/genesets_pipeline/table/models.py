"""Reference group lists and classification rule tables."""

# HGNC gene groups treated as phosphatases
PHOSPHATASE_GROUPS = [
    # Protein phosphatases (catalytic), Ser/Thr
    "Protein phosphatase catalytic subunits",
    "Protein phosphatases",
    "Protein phosphatases, Mg2+/Mn2+ dependent",
    "Serine/threonine phosphatases",
    "Calcineurin subunits",
    # Tyrosine
    "Protein tyrosine phosphatases receptor type",
    "Protein tyrosine phosphatases non-receptor type",
    "Protein tyrosine phosphatase 4A family",
    "LAR protein receptor tyrosine phosphatase family",
    # Dual specificity
    "Atypical dual specificity phosphatases",
    "MAP kinase phosphatases",
    "CDC14 phosphatases",
    "Slingshot protein phosphatases",
    "CTD family phosphatases",
    "PTEN protein phosphatases",
    "Class II Cys-based phosphatases",
    "Class III Cys-based CDC25 phosphatases",
    # HAD
    "HAD Asp-based protein phosphatases",
    "HAD Asp-based non-protein phosphatases",
    "EYA transcriptional coactivator and phosphatases",
    # Regulatory subunits
    "Protein phosphatase 1 regulatory subunits",
    "Protein phosphatase 2 regulatory subunits",
    "Protein phosphatase 2 modulatory subunits",
    "Protein phosphatase 2 scaffold subunits",
    "Protein phosphatase 3 regulatory subunits",
    "Protein phosphatase 4 regulatory subunits",
    "Protein phosphatase 6 regulatory subunits",
    "Myosin phosphatase targeting family",
    "Phosphatase and actin regulators",
    # Lipid
    "Lipid phosphatases",
    "Phosphoinositide phosphatases",
    "Phospholipid phosphatases",
    "Phospholipid phosphatase related",
    "Sphingosine-1-phosphate phosphatases",
    # Carbohydrate/metabolic
    "Acid phosphatases",
    "Alkaline phosphatases",
    "Bisphosphoglycerate phosphatases",
    "Fructose-1,6-bisphosphatases",
    "Glucose 6-phosphatases, catalytic",
    "Sugar phosphatases",
    "Phosphoglycerate mutases",
    # Nucleotide
    "Ectonucleotide pyrophosphatase/phosphodiesterase family",
    # Bifunctional kinase/phosphatase
    "6-phosphofructo-2-kinase/fructose-2,6-biphosphatase family",
]

# Substrate flags: column -> case-insensitive regex over the joined group names
SUBSTRATE_RULES = {
    "Substrate_protein": (
        r"Protein phosphatase|tyrosine phosphatase|Serine/threonine|Calcineurin|"
        r"dual specificity|CDC14|CDC25|Slingshot|CTD|PTEN|EYA|MAP kinase|"
        r"HAD.*protein|Class II Cys|Class III Cys|LAR|4A family"
    ),
    "Substrate_lipid": r"Lipid phosphatase|Phosphoinositide|Phospholipid|Sphingosine|PTEN",
    "Substrate_nucleotide": r"nucleotide|pyrophosphatase",
    "Substrate_carbohydrate": (
        r"Acid phosphatase|Alkaline phosphatase|Bisphosphoglycerate|Fructose|"
        r"Glucose|Sugar|Phosphoglycerate|phosphofructo"
    ),
    "Substrate_other": r"HAD.*non-protein",
}

# Case-sensitive
REGULATORY_PATTERN = r"regulatory|modulatory|scaffold|targeting|Phosphatase and actin"
RECEPTOR_TYPE_PATTERN = r"receptor type|LAR"

# Primary class: first matching (case-sensitive) rule wins, else "Other"
CLASS_PRIMARY_RULES = [
    (r"tyrosine phosphatase.*non-receptor|non-receptor.*tyrosine", "Non-receptor PTP"),
    (r"tyrosine phosphatase.*receptor type|LAR", "Receptor PTP"),
    (r"4A family", "PTP4A family"),
    (r"MAP kinase", "MAP kinase phosphatase"),
    (r"CDC14|Slingshot", "Dual specificity phosphatase"),
    (r"Atypical dual specificity", "Atypical dual specificity"),
    (r"CDC25|Class III Cys", "CDC25 phosphatase"),
    (r"CTD", "CTD phosphatase"),
    (r"EYA", "EYA phosphatase"),
    (r"Calcineurin", "Calcineurin"),
    (r"PTEN", "PTEN phosphatase"),
    (r"Protein phosphatase catalytic|Mg2\+/Mn2\+|Serine/threonine", "Ser/Thr phosphatase"),
    (r"HAD.*protein", "HAD protein phosphatase"),
    (r"HAD.*non-protein", "HAD non-protein phosphatase"),
    (r"Class II Cys", "Class II Cys-based"),
    (r"Phosphoinositide", "Phosphoinositide phosphatase"),
    (r"Phospholipid phosphatase[^s]|Phospholipid phosphatases$", "Phospholipid phosphatase"),
    (r"Sphingosine", "Sphingosine phosphatase"),
    (r"Lipid phosphatase", "Lipid phosphatase"),
    (r"Acid phosphatase", "Acid phosphatase"),
    (r"Alkaline phosphatase", "Alkaline phosphatase"),
    (r"Glucose 6-phosphatase", "Glucose-6-phosphatase"),
    (r"Fructose-1,6-bisphosphatase", "Fructose-1,6-bisphosphatase"),
    (r"Bisphosphoglycerate", "Bisphosphoglycerate phosphatase"),
    (r"Sugar phosphatase", "Sugar phosphatase"),
    (r"Phosphoglycerate mutase", "Phosphoglycerate mutase"),
    (r"Ectonucleotide", "Ectonucleotide phosphatase"),
    (r"phosphofructo.*biphosphatase", "Bifunctional kinase/phosphatase"),
    (r"PP1.*regulatory|Protein phosphatase 1 regulatory", "PP1 regulatory"),
    (r"PP2.*regulatory|PP2.*modulatory|PP2.*scaffold|Protein phosphatase 2", "PP2 regulatory"),
    (r"PP3.*regulatory|Protein phosphatase 3 regulatory", "PP3 regulatory"),
    (r"PP4.*regulatory|Protein phosphatase 4 regulatory", "PP4 regulatory"),
    (r"PP6.*regulatory|Protein phosphatase 6 regulatory", "PP6 regulatory"),
    (r"Myosin|Phosphatase and actin", "Cytoskeletal regulatory"),
]

# HGNC group-name patterns for transcription factor families (case-insensitive)
TF_GROUP_PATTERNS = [
    "transcription factor",
    "^basic helix.loop.helix",
    "^basic leucine zipper",
    "^forkhead box",
    "^ETS ",
    "^homeobox",
    "^nuclear receptor",
    "^GATA zinc finger",
    "^SOX ",
    "^PAX ",
    "^POU class",
    "^LIM class",
    "^KLF ",
    "^SP transcription",
    "^IRF ",
    "^STAT ",
    "^SMAD ",
    "^CREB ",
    "^ATF ",
    "^NF.kappa",
    "^NFAT ",
    "^E2F ",
    "^RFX ",
    "^TEA domain",
    "^HIF ",
    "^MYC ",
    "^MAX ",
    "^MAD ",
    "^REL ",
    "^JUN ",
    "^FOS ",
    "^MAF ",
    "^AP.1 ",
    "^RUNX ",
    "^EBF ",
    "^TCF.LEF",
    "^GLI ",
    "^TFAP",
    "^TBX ",
    "^MEF2",
    "^MYOD",
    "^NEUROD",
    "^NEUROG",
    "^ASCL",
    "^HAND",
    "^TWIST",
    "^SNAI",
    "^ZEB ",
    "^SIX ",
    "^EYA ",
    "^DACH",
    "^DLX ",
    "^MSX ",
    "^OTX ",
    "^EMX ",
    "^NKX ",
    "^PITX",
    "^LHX ",
    "^ISL ",
    "^PROX",
    "^PBX ",
    "^MEIS",
    "^TEAD",
    "^YAP ",
    "^TAZ ",
    "^HIPPO",
    "^NOTCH",
    "^HES ",
    "^HEY ",
    "^ID ",
    "^SREBP",
    "^PPAR",
    "^LXR ",
    "^FXR ",
    "^RXR ",
    "^RAR ",
    "^VDR ",
    "^THR ",
    "^GR ",
    "^ER ",
    "^AR ",
    "^PR ",
    "^MR ",
]

# GO molecular-function terms marking DNA-binding transcription factor activity
TF_GO_TERMS = ["GO:0003700", "GO:0000981"]

# GO terms whose presence marks a kinase as a protein kinase
PROTEIN_KINASE_GO_TERMS = ["GO:0004672", "GO:0004674"]

# Kinase catalog reconciliation statuses
KINASE_STATUS_REASONS = {
    "BOTH": "",
    "MANNING_ONLY_PSEUDO": "Pseudogene (not in KinHub)",
    "MANNING_ONLY": "Manning-only (review needed)",
    "KINHUB_ONLY": "KinHub addition (not in Manning 2002)",
}

# HGNC gene-group table columns used by the phosphatase and TF stages
HGNC_SYMBOL = "Approved symbol"
HGNC_ID = "HGNC ID"
HGNC_NAME = "Approved name"
HGNC_STATUS = "Status"
HGNC_LOCUS_TYPE = "Locus type"
HGNC_GROUP_NAME = "Group name"
HGNC_GROUP_ID = "Group ID"
HGNC_CHROMOSOME = "Chromosome"
HGNC_ENTREZ = "NCBI Gene ID"
HGNC_ENSEMBL = "Ensembl gene ID"
